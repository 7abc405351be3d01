"""Template names used by the prompt builder."""

from __future__ import annotations

FILE_SUMMARY_TEMPLATE = "file_summary.j2"
RELEVANT_FILES_TEMPLATE = "relevant_files.j2"
FILE_QUESTION_TEMPLATE = "file_question.j2"
FINAL_ANSWER_TEMPLATE = "final_answer.j2"


__all__ = [
    "FILE_QUESTION_TEMPLATE",
    "FILE_SUMMARY_TEMPLATE",
    "FINAL_ANSWER_TEMPLATE",
    "RELEVANT_FILES_TEMPLATE",
]
