"""Expose constructed client wrappers."""

from .deepseek import DeepSeekClient
from .replicate import ReplicateClient

__all__ = [
    "DeepSeekClient",
    "ReplicateClient",
]
