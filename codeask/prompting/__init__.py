"""Prompt construction for each pipeline stage."""

from .builder import PromptBuilder

__all__ = ["PromptBuilder"]
