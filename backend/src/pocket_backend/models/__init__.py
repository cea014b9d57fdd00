from .prompt import Prompt, PromptTag
from .tag import Tag

__all__ = [
    "Prompt",
    "PromptTag",
    "Tag",
]
