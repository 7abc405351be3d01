"""Core data models shared across codeask components."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class FileInfo:
    """Package-level metadata the model reports for a source file."""

    file_name: str = ""
    package_name: str = ""
    imports: tuple[str, ...] = ()


@dataclass(frozen=True)
class FileSummary:
    """Structured summary of one source file.

    A zero-valued instance means the model output could not be decoded; callers
    should fall back to the raw response text in that case.
    """

    file_description: str = ""
    file_info: FileInfo = field(default_factory=FileInfo)

    @property
    def file_name(self) -> str:
        return self.file_info.file_name

    @property
    def package_name(self) -> str:
        return self.file_info.package_name

    @property
    def imports(self) -> List[str]:
        return list(self.file_info.imports)

    @property
    def is_empty(self) -> bool:
        return self == FileSummary()


@dataclass
class RelevantFile:
    """A file the model considers relevant to a question."""

    path: str
    rationale: str = ""
    analysis_result: str = ""
    error: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.error is not None


@dataclass
class SummaryOutcome:
    """Result of summarizing a single file."""

    raw: str
    summary: FileSummary


@dataclass
class AnswerOutcome:
    """Result of answering one question about the codebase."""

    question: str
    answer: str
    files: List[RelevantFile] = field(default_factory=list)
    discovery_raw: Optional[str] = None
