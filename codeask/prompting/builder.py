"""Builds the prompts sent at each pipeline stage."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from jinja2 import Environment, FileSystemLoader

from ..models import RelevantFile
from .constants import (
    FILE_QUESTION_TEMPLATE,
    FILE_SUMMARY_TEMPLATE,
    FINAL_ANSWER_TEMPLATE,
    RELEVANT_FILES_TEMPLATE,
)


class PromptBuilder:
    """Renders stage prompts from Jinja2 templates.

    A user ``templates_dir`` is searched before the packaged templates, so a
    project can override any single prompt by dropping a file of the same name.
    """

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir
        self._env = self._create_env(templates_dir)

    def file_summary(self, path: str, content: str) -> str:
        return self._render(FILE_SUMMARY_TEMPLATE, path=path, content=content)

    def relevant_files(self, question: str, summary: str) -> str:
        return self._render(RELEVANT_FILES_TEMPLATE, question=question, summary=summary)

    def file_question(self, question: str, help_info: str, path: str, content: str) -> str:
        return self._render(
            FILE_QUESTION_TEMPLATE,
            question=question,
            help_info=help_info,
            path=path,
            content=content,
        )

    def final_answer(self, question: str, help_info: str, files: Iterable[RelevantFile]) -> str:
        """Render the synthesis header, then append each file's analysis in order."""
        parts: List[str] = [self._render(FINAL_ANSWER_TEMPLATE, question=question, help_info=help_info)]
        for entry in files:
            parts.append(f"### {entry.path}")
            if entry.skipped:
                parts.append(f"(analysis unavailable: {entry.error})")
            else:
                parts.append(entry.analysis_result.strip())
        return "\n\n".join(parts)

    def _render(self, template_name: str, **context: object) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context)

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["PromptBuilder"]
