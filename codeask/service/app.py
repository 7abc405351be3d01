"""FastAPI application entrypoint for codeask service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import CodeAskConfig, ConfigError, load_config
from ..llm.base import GatewayError
from ..orchestrator import PipelineError, QuestionOrchestrator
from ..stages import LocalFileProvider


class SummarizeRequest(BaseModel):
    path: str
    content: Optional[str] = None


class FileInfoModel(BaseModel):
    file_name: str = ""
    package_name: str = ""
    imports: List[str] = []


class SummarizeResponse(BaseModel):
    raw: str
    file_description: str
    file_info: FileInfoModel
    structured: bool


class AskRequest(BaseModel):
    question: str
    summary: str
    help_info: str = ""


class RelevantFileModel(BaseModel):
    path: str
    rationale: str
    error: Optional[str] = None


class AskResponse(BaseModel):
    answer: str
    files: List[RelevantFileModel]
    discovery_raw: Optional[str] = None


class HealthResponse(BaseModel):
    status: str


def _service_orchestrator(config: CodeAskConfig) -> QuestionOrchestrator:
    # Paths posted by clients stay inside the project root.
    return QuestionOrchestrator.from_config(config, source_provider=LocalFileProvider(config.root))


def _default_orchestrator() -> QuestionOrchestrator:
    return _service_orchestrator(load_config(Path.cwd()))


def create_app(
    orchestrator_factory: Callable[[], QuestionOrchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing codeask operations."""

    app = FastAPI(title="codeask", version="0.1.0")

    async def get_orchestrator() -> QuestionOrchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/summarize", response_model=SummarizeResponse)
    async def summarize(
        payload: SummarizeRequest,
        orchestrator: QuestionOrchestrator = Depends(get_orchestrator),
    ) -> SummarizeResponse:
        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(
            None, lambda: orchestrator.summarize(payload.path, payload.content)
        )
        summary = outcome.summary
        return SummarizeResponse(
            raw=outcome.raw,
            file_description=summary.file_description,
            file_info=FileInfoModel(
                file_name=summary.file_name,
                package_name=summary.package_name,
                imports=summary.imports,
            ),
            structured=not summary.is_empty,
        )

    @app.post("/ask", response_model=AskResponse)
    async def ask(
        payload: AskRequest,
        orchestrator: QuestionOrchestrator = Depends(get_orchestrator),
    ) -> AskResponse:
        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(
            None,
            lambda: orchestrator.answer(payload.question, payload.summary, payload.help_info),
        )
        return AskResponse(
            answer=outcome.answer,
            files=[
                RelevantFileModel(path=entry.path, rationale=entry.rationale, error=entry.error)
                for entry in outcome.files
            ],
            discovery_raw=outcome.discovery_raw,
        )

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(_: Any, exc: PipelineError) -> JSONResponse:
        if isinstance(exc.cause, FileNotFoundError):
            return JSONResponse(status_code=404, content={"detail": str(exc), "stage": exc.stage.value})
        return JSONResponse(status_code=502, content={"detail": str(exc), "stage": exc.stage.value})

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(_: Any, exc: GatewayError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(ConfigError)
    async def config_error_handler(_: Any, exc: ConfigError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": f"Invalid configuration: {exc}"})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1",
    port: int = 8000,
    *,
    config: CodeAskConfig | None = None,
) -> None:  # pragma: no cover - integration path
    import uvicorn

    if config is None:
        app = create_app()
    else:
        orchestrator = _service_orchestrator(config)
        app = create_app(lambda: orchestrator)
    uvicorn.run(app, host=host, port=port)
