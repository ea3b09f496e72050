"""FastAPI application entrypoint for compscan service mode."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import load_config
from ..errors import CompscanError
from ..scanner import Scanner


class ScanRequest(BaseModel):
    paths: List[str]
    design_systems: Optional[List[str]] = None
    exclude: List[str] = []
    rebuild_catalog: bool = False


class ScanResponse(BaseModel):
    files_scanned: int
    failures: List[str]
    components: List[Dict[str, Any]]


class ModuleResponse(BaseModel):
    name: str
    path: str
    third_party: bool


class HealthResponse(BaseModel):
    status: str


def _default_scanner() -> Scanner:
    return Scanner(load_config(Path.cwd()))


def create_app(
    scanner_factory: Callable[[], Scanner] = _default_scanner,
) -> FastAPI:
    """Create the FastAPI application exposing compscan operations."""

    app = FastAPI(title="compscan Service", version="0.1.0")

    async def get_scanner() -> Scanner:
        # One scanner per request so scan state never leaks between callers.
        scanner = scanner_factory()
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, scanner.initialize)
        return scanner

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/modules", response_model=List[ModuleResponse])
    async def modules(scanner: Scanner = Depends(get_scanner)) -> List[ModuleResponse]:
        return [
            ModuleResponse(
                name=module.name,
                path=module.source_path,
                third_party=module.is_third_party,
            )
            for module in scanner.modules
        ]

    @app.post("/scan", response_model=ScanResponse)
    async def scan(
        payload: ScanRequest,
        scanner: Scanner = Depends(get_scanner),
    ) -> ScanResponse:
        def _run_scan() -> ScanResponse:
            catalog = scanner.load_or_build_catalog(rebuild=payload.rebuild_catalog)
            context = scanner.new_context(catalog, design_systems=payload.design_systems)
            roots = [Path(path).expanduser().resolve() for path in payload.paths]
            report = scanner.scan(roots, context, exclude=payload.exclude)
            return ScanResponse(
                files_scanned=len(report.files),
                failures=[str(failure) for failure in report.failures],
                components=[record.to_dict() for record in context.store.records()],
            )

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run_scan)

    @app.exception_handler(CompscanError)
    async def compscan_error_handler(
        _: Any, exc: CompscanError
    ) -> JSONResponse:  # pragma: no cover - simple mapping
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
