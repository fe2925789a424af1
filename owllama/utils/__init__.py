"""Utility helpers for owllama."""
