"""Per-file analysis stage and the file content provider it reads through."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .llm.base import ModelGateway
from .logging import TraceLogger, get_logger, guard_trace
from .prompting.builder import PromptBuilder


class FileProvider(Protocol):
    """Returns the text of a source file, raising ``OSError`` when it cannot."""

    def read(self, path: str) -> str:
        ...


class LocalFileProvider:
    """Reads files from disk, relative paths resolved against ``root``.

    With ``confine`` set, paths that resolve outside ``root`` are refused with
    ``PermissionError``. Malformed paths (e.g. an embedded NUL byte) surface as
    ``OSError`` like any other unreadable file.
    """

    def __init__(self, root: Path | str | None = None, *, confine: bool = True) -> None:
        self.root = Path(root or Path.cwd()).expanduser().resolve()
        self.confine = confine

    def read(self, path: str) -> str:
        try:
            candidate = Path(path).expanduser()
            if not candidate.is_absolute():
                candidate = self.root / candidate
            resolved = candidate.resolve()
            if self.confine and not resolved.is_relative_to(self.root):
                raise PermissionError(f"{path} is outside of {self.root}")
            return resolved.read_text(encoding="utf-8", errors="replace")
        except ValueError as exc:
            raise OSError(f"invalid path {path!r}: {exc}") from exc

    def unconfined(self) -> "LocalFileProvider":
        """Return a provider on the same root that also reads paths outside it."""
        return LocalFileProvider(self.root, confine=False)


class FileAnalysisStage:
    """Asks the model what one file contributes to answering a question."""

    def __init__(
        self,
        gateway: ModelGateway,
        *,
        prompt_builder: PromptBuilder | None = None,
        file_provider: FileProvider | None = None,
        trace: TraceLogger | None = None,
    ) -> None:
        self.gateway = gateway
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.file_provider = file_provider or LocalFileProvider()
        self.trace = guard_trace(trace)
        self.logger = get_logger("stages")

    def analyze(self, question: str, help_info: str, path: str) -> str:
        """Return the model's prose analysis of ``path``, unmodified."""
        content = self.file_provider.read(path)
        prompt = self.prompt_builder.file_question(question, help_info, path, content)
        self.logger.debug("Analyzing %s (%d prompt chars)", path, len(prompt))
        response = self.gateway.send(prompt)

        self.trace.log_detail("######## Per-file analysis ########")
        self.trace.log_detail(path)
        self.trace.log_detail(response)
        self.logger.info("Analyzed %s", path)
        return response


__all__ = ["FileAnalysisStage", "FileProvider", "LocalFileProvider"]
