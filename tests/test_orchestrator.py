"""Tests for codeask.orchestrator."""

from __future__ import annotations

import threading
import time

import pytest

from codeask.llm.base import RateLimitError, TransportError
from codeask.logging import FileTraceLogger
from codeask.models import FileSummary
from codeask.orchestrator import PipelineError, PipelineStage, QuestionOrchestrator
from codeask.stages import LocalFileProvider
from tests._fixtures.gateway import RoutingGateway, ScriptedGateway

SUMMARY_DOC = "cmd/question.go: asks questions\ninternal/usecase/ai_code.go: pipeline\n"


class RecordingTrace:
    def __init__(self) -> None:
        self.lines: list[str] = []

    def log_detail(self, text: str) -> None:
        self.lines.append(text)


def _orchestrator(gateway, source_tree, **kwargs) -> QuestionOrchestrator:
    return QuestionOrchestrator(
        gateway,
        file_provider=LocalFileProvider(source_tree.path()),
        **kwargs,
    )


def test_summarize_decodes_fenced_yaml(source_tree) -> None:
    raw = (
        "```yaml\n"
        'file_description: "parses CLI args"\n'
        "file_info:\n"
        "  package_name: cmd\n"
        '  imports: ["fmt","os"]\n'
        "```"
    )
    gateway = ScriptedGateway([raw])

    outcome = _orchestrator(gateway, source_tree).summarize("cmd/root.go", "package cmd\n")

    assert outcome.summary.file_description == "parses CLI args"
    assert outcome.summary.package_name == "cmd"
    assert outcome.summary.imports == ["fmt", "os"]
    assert not outcome.raw.startswith("```")
    assert "cmd/root.go" in gateway.prompts[0]


def test_summarize_reads_content_through_provider(source_tree) -> None:
    source_tree.write({"pkg/util.go": "package pkg\nfunc Helper() {}\n"})
    gateway = ScriptedGateway(["file_description: helpers\n"])

    outcome = _orchestrator(gateway, source_tree).summarize("pkg/util.go")

    assert outcome.summary.file_description == "helpers"
    assert "func Helper() {}" in gateway.prompts[0]


def test_summarize_returns_raw_text_when_yaml_is_broken(source_tree) -> None:
    gateway = ScriptedGateway(["```yaml\nThis file does things: [\n```"])

    outcome = _orchestrator(gateway, source_tree).summarize("main.go", "package main")

    assert outcome.summary == FileSummary()
    assert outcome.summary.is_empty
    assert outcome.raw == "This file does things: ["


def test_summarize_wraps_gateway_failures(source_tree) -> None:
    gateway = ScriptedGateway([TransportError("boom")])

    with pytest.raises(PipelineError) as excinfo:
        _orchestrator(gateway, source_tree).summarize("main.go", "package main")

    assert excinfo.value.stage is PipelineStage.SUMMARIZING
    assert isinstance(excinfo.value.cause, TransportError)
    assert "summarizing" in str(excinfo.value)


def test_answer_runs_all_three_stages_in_order(source_tree) -> None:
    source_tree.write({"a.go": "package a // alpha source", "b.go": "package b // beta source"})
    gateway = ScriptedGateway(
        [
            "```yaml\n- file: a.go\n  why: defines A\n- file: b.go\n  why: defines B\n```",
            "Analysis of A",
            "Analysis of B",
            "Final answer",
        ]
    )
    trace = RecordingTrace()

    outcome = _orchestrator(gateway, source_tree, trace=trace).answer(
        "How do A and B interact?", SUMMARY_DOC, "B wraps A"
    )

    assert outcome.answer == "Final answer"
    assert outcome.discovery_raw is None
    assert [entry.path for entry in outcome.files] == ["a.go", "b.go"]
    assert [entry.analysis_result for entry in outcome.files] == ["Analysis of A", "Analysis of B"]

    discovery, analyze_a, analyze_b, synthesis = gateway.prompts
    assert SUMMARY_DOC.strip() in discovery
    assert "alpha source" in analyze_a and "File path: a.go" in analyze_a
    assert "beta source" in analyze_b and "File path: b.go" in analyze_b
    assert synthesis.index("Analysis of A") < synthesis.index("Analysis of B")
    assert "B wraps A" in synthesis

    assert "a.go" in trace.lines and "defines A" in trace.lines
    assert "Analysis of B" in trace.lines


def test_answer_with_no_relevant_files_skips_analysis(source_tree) -> None:
    gateway = ScriptedGateway(["[]", "Nothing to go on"])

    outcome = _orchestrator(gateway, source_tree).answer("Anything?", SUMMARY_DOC)

    assert outcome.answer == "Nothing to go on"
    assert outcome.files == []
    assert len(gateway.prompts) == 2


def test_answer_continues_when_discovery_is_unparsable(source_tree) -> None:
    gateway = ScriptedGateway(["I am not sure which files matter.", "Best effort answer"])
    trace = RecordingTrace()

    outcome = _orchestrator(gateway, source_tree, trace=trace).answer("Anything?", SUMMARY_DOC)

    assert outcome.answer == "Best effort answer"
    assert outcome.files == []
    assert outcome.discovery_raw == "I am not sure which files matter."
    assert len(gateway.prompts) == 2
    assert "File analyses:" in gateway.prompts[1]
    assert "I am not sure which files matter." in trace.lines


def test_answer_rejects_empty_question(source_tree) -> None:
    gateway = ScriptedGateway([])

    with pytest.raises(ValueError):
        _orchestrator(gateway, source_tree).answer("   ", SUMMARY_DOC)

    assert gateway.prompts == []


def test_missing_file_aborts_question_by_default(source_tree) -> None:
    source_tree.write({"b.go": "package b"})
    gateway = ScriptedGateway(["- file: missing.go\n  why: gone\n- file: b.go\n  why: here\n"])

    with pytest.raises(PipelineError) as excinfo:
        _orchestrator(gateway, source_tree).answer("What?", SUMMARY_DOC)

    assert excinfo.value.stage is PipelineStage.ANALYZING
    assert excinfo.value.path == "missing.go"
    assert isinstance(excinfo.value.cause, FileNotFoundError)
    assert len(gateway.prompts) == 1


def test_tolerated_file_errors_are_recorded_and_skipped(source_tree) -> None:
    source_tree.write({"b.go": "package b"})
    gateway = ScriptedGateway(
        [
            "- file: missing.go\n  why: gone\n- file: b.go\n  why: here\n",
            "Analysis of B",
            "Answer from B only",
        ]
    )

    outcome = _orchestrator(gateway, source_tree, tolerate_file_errors=True).answer(
        "What?", SUMMARY_DOC
    )

    missing, present = outcome.files
    assert missing.skipped and missing.analysis_result == ""
    assert present.analysis_result == "Analysis of B" and not present.skipped
    assert outcome.answer == "Answer from B only"
    assert "analysis unavailable" in gateway.prompts[-1]


def test_paths_outside_the_root_are_refused(source_tree) -> None:
    gateway = ScriptedGateway(["- file: ../../etc/passwd\n  why: curious\n"])

    with pytest.raises(PipelineError) as excinfo:
        _orchestrator(gateway, source_tree).answer("What?", SUMMARY_DOC)

    assert isinstance(excinfo.value.cause, PermissionError)


@pytest.mark.parametrize(
    ("replies", "stage"),
    [
        ([RateLimitError("slow down")], PipelineStage.DISCOVERING),
        (["- file: a.go\n", TransportError("reset")], PipelineStage.ANALYZING),
        (["[]", TransportError("reset")], PipelineStage.SYNTHESIZING),
    ],
)
def test_gateway_failures_name_the_failed_stage(source_tree, replies, stage) -> None:
    source_tree.write({"a.go": "package a"})
    gateway = ScriptedGateway(replies)

    with pytest.raises(PipelineError) as excinfo:
        _orchestrator(gateway, source_tree).answer("What?", SUMMARY_DOC)

    assert excinfo.value.stage is stage
    assert stage.value in str(excinfo.value)


def test_parallel_analysis_keeps_discovery_order(source_tree) -> None:
    paths = [f"f{index}.go" for index in range(5)]
    source_tree.write({path: f"package f // body of {path}" for path in paths})
    discovery = "".join(f"- file: {path}\n" for path in paths)
    active = {"now": 0, "peak": 0}
    lock = threading.Lock()

    def route(prompt: str) -> str:
        if "Codebase summary:" in prompt:
            return discovery
        if "File analyses:" in prompt:
            return "joined"
        path = next(p for p in paths if f"body of {p}" in prompt)
        with lock:
            active["now"] += 1
            active["peak"] = max(active["peak"], active["now"])
        # Later files finish first to shake out ordering bugs.
        time.sleep(0.01 * (len(paths) - paths.index(path)))
        with lock:
            active["now"] -= 1
        return f"analysis of {path}"

    gateway = RoutingGateway(route)
    outcome = _orchestrator(gateway, source_tree, max_workers=3).answer("What?", SUMMARY_DOC)

    assert [entry.analysis_result for entry in outcome.files] == [f"analysis of {p}" for p in paths]
    synthesis = gateway.prompts[-1]
    positions = [synthesis.index(f"analysis of {p}") for p in paths]
    assert positions == sorted(positions)
    assert active["peak"] > 1


def test_orchestrator_rejects_invalid_worker_count() -> None:
    with pytest.raises(ValueError):
        QuestionOrchestrator(ScriptedGateway([]), max_workers=0)


class ExplodingTrace:
    def __init__(self) -> None:
        self.calls = 0

    def log_detail(self, text: str) -> None:
        self.calls += 1
        raise RuntimeError("trace sink is gone")


def test_failing_trace_sink_does_not_abort_the_question(source_tree) -> None:
    source_tree.write({"a.go": "package a"})
    trace = ExplodingTrace()
    gateway = ScriptedGateway(["- file: a.go\n  why: only file\n", "Analysis of A", "Final"])

    outcome = _orchestrator(gateway, source_tree, trace=trace).answer("What?", SUMMARY_DOC)

    assert outcome.answer == "Final"
    assert outcome.files[0].analysis_result == "Analysis of A"
    assert trace.calls > 0


def test_unencodable_reply_still_reaches_the_trace_file(source_tree, tmp_path) -> None:
    source_tree.write({"a.go": "package a"})
    trace_path = tmp_path / "trace.log"
    gateway = ScriptedGateway(["- file: a.go\n", "bad \ud800 text", "Final"])

    outcome = _orchestrator(gateway, source_tree, trace=FileTraceLogger(trace_path)).answer(
        "What?", SUMMARY_DOC
    )

    assert outcome.answer == "Final"
    assert "bad ? text" in trace_path.read_text(encoding="utf-8")


def test_summarize_reads_caller_paths_outside_the_root(source_tree, tmp_path) -> None:
    outside = tmp_path / "other" / "x.go"
    outside.parent.mkdir()
    outside.write_text("package other // outside", encoding="utf-8")
    gateway = ScriptedGateway(["file_description: lives elsewhere\n"])

    outcome = _orchestrator(gateway, source_tree).summarize(str(outside))

    assert outcome.summary.file_description == "lives elsewhere"
    assert "package other // outside" in gateway.prompts[0]


def test_malformed_discovery_path_is_skipped_when_tolerated(source_tree) -> None:
    source_tree.write({"b.go": "package b"})
    gateway = ScriptedGateway(
        ['- file: "a\\0b.go"\n- file: b.go\n', "Analysis of B", "Answer from B only"]
    )

    outcome = _orchestrator(gateway, source_tree, tolerate_file_errors=True).answer(
        "What?", SUMMARY_DOC
    )

    malformed, present = outcome.files
    assert malformed.skipped and "invalid path" in malformed.error
    assert present.analysis_result == "Analysis of B"
    assert outcome.answer == "Answer from B only"


def test_malformed_discovery_path_fails_the_analyzing_stage(source_tree) -> None:
    gateway = ScriptedGateway(['- file: "a\\0b.go"\n'])

    with pytest.raises(PipelineError) as excinfo:
        _orchestrator(gateway, source_tree).answer("What?", SUMMARY_DOC)

    assert excinfo.value.stage is PipelineStage.ANALYZING
    assert isinstance(excinfo.value.cause, OSError)


def test_parallel_failure_cancels_queued_analyses(source_tree) -> None:
    paths = [f"f{index}.go" for index in range(6)]
    source_tree.write({path: f"package f // body of {path}" for path in paths})
    discovery = "".join(f"- file: {path}\n" for path in paths)

    def route(prompt: str) -> str:
        if "Codebase summary:" in prompt:
            return discovery
        if "body of f0.go" in prompt:
            raise TransportError("reset")
        time.sleep(0.2)
        return "analysis"

    gateway = RoutingGateway(route)

    with pytest.raises(PipelineError) as excinfo:
        _orchestrator(gateway, source_tree, max_workers=2).answer("What?", SUMMARY_DOC)

    assert excinfo.value.path == "f0.go"
    assert not any("body of f5.go" in prompt for prompt in gateway.prompts)
    assert not any("File analyses:" in prompt for prompt in gateway.prompts)
