"""Ask questions about a codebase and summarize its files with a language model."""

from .models import AnswerOutcome, FileInfo, FileSummary, RelevantFile, SummaryOutcome
from .orchestrator import PipelineError, PipelineStage, QuestionOrchestrator

__all__ = [
    "AnswerOutcome",
    "FileInfo",
    "FileSummary",
    "PipelineError",
    "PipelineStage",
    "QuestionOrchestrator",
    "RelevantFile",
    "SummaryOutcome",
]
