"""Tests for raw summary persistence."""

from __future__ import annotations

from pathlib import Path

from codeask.stores import SummaryStore


def test_result_path_flattens_source_path(tmp_path: Path) -> None:
    store = SummaryStore(tmp_path)

    assert store.result_path("internal/usecase/ai_code.go") == tmp_path / "internal|usecase|ai_code.go.yaml"
    assert store.result_path("./cmd/root.go") == tmp_path / "cmd|root.go.yaml"
    assert store.result_path(".env.go") == tmp_path / ".env.go.yaml"


def test_save_creates_directory_and_writes_raw_text(tmp_path: Path) -> None:
    store = SummaryStore(tmp_path / "result")

    saved = store.save("cmd/root.go", "file_description: root command")

    assert saved == tmp_path / "result" / "cmd|root.go.yaml"
    assert saved.read_text(encoding="utf-8") == "file_description: root command\n"
