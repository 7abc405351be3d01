"""Configuration loading for codeask (.codeask.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_FILENAME = ".codeask.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Model backend settings."""

    backend: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class PipelineConfig:
    """Question pipeline behaviour."""

    max_workers: int = 1
    tolerate_file_errors: bool = False
    trace_log: Optional[Path] = None


@dataclass
class PromptConfig:
    """Prompt template overrides."""

    templates_dir: Optional[Path] = None


@dataclass
class CodeAskConfig:
    """Represents the settings defined in .codeask.yml."""

    root: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    prompts: PromptConfig = field(default_factory=PromptConfig)
    summary_path: Optional[Path] = None
    output_dir: Optional[Path] = None


def load_config(config_path: Path) -> CodeAskConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CodeAskConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    llm = LLMConfig(
        backend=_as_str(llm_data.get("backend")),
        model=_as_str(llm_data.get("model")),
        base_url=_as_str(llm_data.get("base_url")),
        api_key=_as_str(llm_data.get("api_key")),
        temperature=_as_float(llm_data.get("temperature")),
        max_tokens=_as_int(llm_data.get("max_tokens")),
        request_timeout=_as_float(llm_data.get("request_timeout")),
    )

    pipeline_data = _as_dict(data.get("pipeline"))
    trace_log = _as_str(pipeline_data.get("trace_log"))
    max_workers = _as_int(pipeline_data.get("max_workers"))
    if max_workers is not None and max_workers < 1:
        raise ConfigError("pipeline.max_workers must be at least 1")
    pipeline = PipelineConfig(
        max_workers=max_workers or 1,
        tolerate_file_errors=_as_bool(pipeline_data.get("tolerate_file_errors")) or False,
        trace_log=root / trace_log if trace_log else None,
    )

    prompts_data = _as_dict(data.get("prompts"))
    templates_dir = _as_str(prompts_data.get("templates_dir"))
    prompts = PromptConfig(templates_dir=root / templates_dir if templates_dir else None)

    summary_path = _as_str(data.get("summary_path"))
    output_dir = _as_str(data.get("output_dir"))

    return CodeAskConfig(
        root=root,
        llm=llm,
        pipeline=pipeline,
        prompts=prompts,
        summary_path=root / summary_path if summary_path else None,
        output_dir=root / output_dir if output_dir else None,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None

