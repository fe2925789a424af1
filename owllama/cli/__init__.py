"""Command-line interface for owllama."""
