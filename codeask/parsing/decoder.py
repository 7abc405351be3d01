"""Decode sanitized model output into typed records."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import yaml

from ..models import FileInfo, FileSummary, RelevantFile

_PATH_KEYS = ("file", "path", "file_path")
_RATIONALE_KEYS = ("why", "reason", "rationale")
_TYPED_SCALAR_TAGS = frozenset(
    {
        "tag:yaml.org,2002:bool",
        "tag:yaml.org,2002:int",
        "tag:yaml.org,2002:float",
        "tag:yaml.org,2002:timestamp",
    }
)


class DecodeError(ValueError):
    """Raised when text does not decode into the expected structure."""


class _TextLoader(yaml.SafeLoader):
    """Safe loader that keeps numbers, booleans and dates as the text written."""


_TextLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _TYPED_SCALAR_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def decode_file_summary(text: str) -> FileSummary:
    """Decode a ``file_description`` / ``file_info`` mapping."""
    data = _load(text)
    if not isinstance(data, dict):
        raise DecodeError(f"expected a mapping, got {type(data).__name__}")

    info = data.get("file_info")
    if info is not None and not isinstance(info, dict):
        raise DecodeError("file_info must be a mapping")
    info = info or {}

    return FileSummary(
        file_description=_as_text(data.get("file_description")),
        file_info=FileInfo(
            file_name=_as_text(info.get("file_name")),
            package_name=_as_text(info.get("package_name")),
            imports=tuple(_as_text_list(info.get("imports"))),
        ),
    )


def decode_relevant_files(text: str) -> List[RelevantFile]:
    """Decode the discovery response into unique relevant-file entries, in order."""
    data = _load(text)
    items = _find_sequence(data)
    if items is None:
        raise DecodeError(f"expected a sequence of files, got {type(data).__name__}")

    entries: List[RelevantFile] = []
    seen: set[str] = set()
    for item in items:
        entry = _entry_from_item(item)
        if entry is None or entry.path in seen:
            continue
        seen.add(entry.path)
        entries.append(entry)
    return entries


def _load(text: str) -> Any:
    try:
        return yaml.load(text, Loader=_TextLoader)
    except yaml.YAMLError as exc:
        raise DecodeError(f"invalid YAML: {exc}") from exc


def _find_sequence(data: Any) -> Optional[List[Any]]:
    if data is None:
        return []
    if isinstance(data, list):
        return data
    # Some replies wrap the list under a single key, e.g. ``files:``.
    if isinstance(data, dict) and len(data) == 1:
        (value,) = data.values()
        if isinstance(value, list):
            return value
    return None


def _entry_from_item(item: Any) -> Optional[RelevantFile]:
    if isinstance(item, str):
        path = item.strip()
        return RelevantFile(path=path) if path else None
    if not isinstance(item, dict):
        return None
    path = _first_text(item, _PATH_KEYS).strip()
    if not path:
        return None
    return RelevantFile(path=path, rationale=_first_text(item, _RATIONALE_KEYS).strip())


def _first_text(mapping: Dict[Any, Any], keys: Iterable[str]) -> str:
    for key in keys:
        value = _as_text(mapping.get(key))
        if value:
            return value
    return ""


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (str, int, float, bool)):
        return str(value)
    return ""


def _as_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (str, int, float, bool, date)):
        return [_as_text(value)]
    if isinstance(value, list):
        return [_as_text(item) for item in value if isinstance(item, (str, int, float, bool, date))]
    return []


__all__ = ["DecodeError", "decode_file_summary", "decode_relevant_files"]
