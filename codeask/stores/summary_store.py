"""Persists raw per-file summary responses."""

from __future__ import annotations

from pathlib import Path

from ..logging import get_logger


class SummaryStore:
    """Writes each file's cleaned summary YAML under ``output_dir``.

    The stored name is the source path with ``/`` replaced by ``|`` plus
    ``.yaml``, so every source file maps to one flat entry.
    """

    def __init__(self, output_dir: Path | str) -> None:
        self.output_dir = Path(output_dir).expanduser()
        self.logger = get_logger("stores.summary")

    def result_path(self, source_path: str) -> Path:
        normalised = source_path.replace("\\", "/")
        while normalised.startswith("./"):
            normalised = normalised[2:]
        return self.output_dir / f"{normalised.replace('/', '|')}.yaml"

    def save(self, source_path: str, raw: str) -> Path:
        target = self.result_path(source_path)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target.write_text(raw if raw.endswith("\n") else f"{raw}\n", encoding="utf-8")
        self.logger.debug("Saved summary for %s to %s", source_path, target)
        return target


__all__ = ["SummaryStore"]
