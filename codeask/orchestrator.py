"""Pipeline orchestration for file summaries and codebase questions."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, List, Optional, TypeVar

from .config import CodeAskConfig
from .llm import build_gateway
from .llm.base import GatewayError, ModelGateway
from .logging import FileTraceLogger, NullTraceLogger, TraceLogger, get_logger, guard_trace
from .models import AnswerOutcome, FileSummary, RelevantFile, SummaryOutcome
from .parsing.decoder import DecodeError, decode_file_summary, decode_relevant_files
from .parsing.sanitizer import SanitizeRule, sanitize_response
from .prompting.builder import PromptBuilder
from .stages import FileAnalysisStage, FileProvider, LocalFileProvider

T = TypeVar("T")


class PipelineStage(str, Enum):
    """States of the question pipeline (plus the standalone summary flow)."""

    DISCOVERING = "discovering"
    ANALYZING = "analyzing"
    SYNTHESIZING = "synthesizing"
    SUMMARIZING = "summarizing"
    DONE = "done"
    FAILED = "failed"


class PipelineError(RuntimeError):
    """A gateway or file read failure that aborted a pipeline stage."""

    def __init__(self, stage: PipelineStage, cause: Exception, *, path: str | None = None) -> None:
        target = f" ({path})" if path else ""
        super().__init__(f"{stage.value} stage failed{target}: {cause}")
        self.stage = stage
        self.cause = cause
        self.path = path


class QuestionOrchestrator:
    """Drives the model through discovery, per-file analysis and synthesis.

    The orchestrator keeps no per-question state: every call to :meth:`answer`
    builds its own working set, so one instance may serve concurrent callers.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        *,
        prompt_builder: PromptBuilder | None = None,
        file_provider: FileProvider | None = None,
        source_provider: FileProvider | None = None,
        trace: TraceLogger | None = None,
        sanitize_rules: tuple[SanitizeRule, ...] | None = None,
        tolerate_file_errors: bool = False,
        max_workers: int = 1,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.gateway = gateway
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.file_provider = file_provider or LocalFileProvider()
        self.source_provider = source_provider or _caller_provider(self.file_provider)
        self.trace = guard_trace(trace)
        self.sanitize_rules = sanitize_rules
        self.tolerate_file_errors = tolerate_file_errors
        self.max_workers = max_workers
        self.file_stage = FileAnalysisStage(
            gateway,
            prompt_builder=self.prompt_builder,
            file_provider=self.file_provider,
            trace=self.trace,
        )
        self.logger = get_logger("orchestrator")

    @classmethod
    def from_config(
        cls,
        config: CodeAskConfig,
        *,
        gateway: ModelGateway | None = None,
        file_provider: FileProvider | None = None,
        source_provider: FileProvider | None = None,
    ) -> "QuestionOrchestrator":
        """Build an orchestrator from ``.codeask.yml`` settings."""
        pipeline = config.pipeline
        trace: TraceLogger = (
            FileTraceLogger(pipeline.trace_log) if pipeline.trace_log else NullTraceLogger()
        )
        return cls(
            gateway or build_gateway(config.llm),
            prompt_builder=PromptBuilder(config.prompts.templates_dir),
            file_provider=file_provider,
            source_provider=source_provider,
            trace=trace,
            tolerate_file_errors=pipeline.tolerate_file_errors,
            max_workers=pipeline.max_workers,
        )

    def summarize(self, path: str, content: str | None = None) -> SummaryOutcome:
        """Summarize one file; structure degrades to an empty summary on bad YAML.

        Without ``content`` the file is read through ``source_provider``, which
        by default accepts any path the caller names, unlike the discovery paths
        read during :meth:`answer`.
        """
        stage = PipelineStage.SUMMARIZING
        if content is None:
            content = self._guard(stage, lambda: self.source_provider.read(path), path=path)
        prompt = self.prompt_builder.file_summary(path, content)
        response = self._guard(stage, lambda: self.gateway.send(prompt), path=path)

        cleaned = sanitize_response(response, self.sanitize_rules)
        try:
            summary = decode_file_summary(cleaned)
        except DecodeError as exc:
            self.logger.warning("Could not decode summary for %s: %s", path, exc)
            self.logger.debug("Raw summary response for %s:\n%s", path, cleaned)
            return SummaryOutcome(raw=cleaned, summary=FileSummary())
        return SummaryOutcome(raw=cleaned, summary=summary)

    def answer(self, question: str, summary_document: str, help_info: str = "") -> AnswerOutcome:
        """Answer ``question`` using the codebase summary and the relevant files."""
        question = question.strip()
        if not question:
            raise ValueError("question cannot be empty")

        self.logger.info("Stage %s", PipelineStage.DISCOVERING.value)
        files, discovery_raw = self._discover(question, summary_document)

        self.logger.info("Stage %s: %d file(s)", PipelineStage.ANALYZING.value, len(files))
        self._analyze(question, files)

        self.logger.info("Stage %s", PipelineStage.SYNTHESIZING.value)
        prompt = self.prompt_builder.final_answer(question, help_info, files)
        answer = self._guard(PipelineStage.SYNTHESIZING, lambda: self.gateway.send(prompt))

        self.logger.info("Stage %s", PipelineStage.DONE.value)
        return AnswerOutcome(
            question=question,
            answer=answer,
            files=files,
            discovery_raw=discovery_raw,
        )

    def _discover(self, question: str, summary_document: str) -> tuple[List[RelevantFile], Optional[str]]:
        prompt = self.prompt_builder.relevant_files(question, summary_document)
        response = self._guard(PipelineStage.DISCOVERING, lambda: self.gateway.send(prompt))
        cleaned = sanitize_response(response, self.sanitize_rules)
        try:
            files = decode_relevant_files(cleaned)
        except DecodeError as exc:
            self.logger.warning("Could not decode relevant files, continuing without any: %s", exc)
            self.logger.debug("Raw discovery response:\n%s", cleaned)
            self.trace.log_detail("---------- Unparsed relevant-file response ----------")
            self.trace.log_detail(cleaned)
            return [], cleaned

        self.trace.log_detail("---------- Files related to the question ----------")
        for entry in files:
            self.trace.log_detail(entry.path)
            self.trace.log_detail(entry.rationale)
            self.logger.debug("Relevant file %s: %s", entry.path, entry.rationale)
        return files, None

    def _analyze(self, question: str, files: List[RelevantFile]) -> None:
        if not files:
            return
        if self.max_workers > 1 and len(files) > 1:
            workers = min(self.max_workers, len(files))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [pool.submit(self._analyze_one, question, entry.path) for entry in files]
                try:
                    results = [future.result() for future in futures]
                except PipelineError:
                    pool.shutdown(wait=True, cancel_futures=True)
                    raise
        else:
            results = [self._analyze_one(question, entry.path) for entry in files]

        for entry, (text, error) in zip(files, results):
            entry.analysis_result = text
            entry.error = error

    def _analyze_one(self, question: str, path: str) -> tuple[str, Optional[str]]:
        try:
            return self.file_stage.analyze(question, "", path), None
        except (OSError, GatewayError) as exc:
            if not self.tolerate_file_errors:
                self._log_exception(f"Analysis of {path} failed", exc)
                raise PipelineError(PipelineStage.ANALYZING, exc, path=path) from exc
            self.logger.warning("Skipping %s: %s", path, exc)
            self.trace.log_detail(f"Skipped {path}: {exc}")
            return "", str(exc)

    def _guard(self, stage: PipelineStage, call: Callable[[], T], *, path: str | None = None) -> T:
        try:
            return call()
        except (OSError, GatewayError) as exc:
            self._log_exception(f"Stage {PipelineStage.FAILED.value} during {stage.value}", exc)
            raise PipelineError(stage, exc, path=path) from exc

    def _log_exception(self, message: str, exc: Exception) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.exception("%s: %s", message, exc)
        else:
            self.logger.error("%s: %s", message, exc)


def _caller_provider(provider: FileProvider) -> FileProvider:
    if isinstance(provider, LocalFileProvider):
        return provider.unconfined()
    return provider


__all__ = ["PipelineError", "PipelineStage", "QuestionOrchestrator"]
