"""Persistence helpers for codeask outputs."""

from .summary_store import SummaryStore

__all__ = ["SummaryStore"]
