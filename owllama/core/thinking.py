"""
Display filter for model reasoning markup.
"""

from dataclasses import dataclass

DEFAULT_THINK_START = "<think>"
DEFAULT_THINK_END = "</think>"
DEFAULT_REASONING_MODELS: tuple[str, ...] = ("qwen3",)


@dataclass(frozen=True)
class ThinkFilter:
    """
    Removes reasoning blocks from text shown to the user.

    Only models whose name contains one of ``model_markers`` are filtered.
    Unmatched or out-of-order markers are left in place.
    """

    start: str = DEFAULT_THINK_START
    end: str = DEFAULT_THINK_END
    model_markers: tuple[str, ...] = DEFAULT_REASONING_MODELS

    def applies_to(self, model: str) -> bool:
        return any(marker and marker in model for marker in self.model_markers)

    def __call__(self, model: str, text: str) -> str:
        if not self.applies_to(model):
            return text

        while True:
            start = text.find(self.start)
            end = text.find(self.end)
            if start == -1 or end == -1 or end <= start:
                return text
            text = text[:start] + text[end + len(self.end) :]
