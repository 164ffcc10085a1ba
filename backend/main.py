"""FastAPI backend exposing scan jobs, progress, results and deletions."""
from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from duplicate_scanner import (
    DeletionOutcome,
    DeletionStatus,
    InvalidScanTargetError,
    JobNotFoundError,
    ScannerSettings,
    ScanOrchestrator,
    ScanStatus,
)
from duplicate_scanner.logs import build_context, configure_logger, duration_ms, log_event

API_COMPONENT = "api"


class _ApiModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ScanRequest(BaseModel):
    directory: str


class DeleteFilesRequest(BaseModel):
    file_paths: List[str] = Field(default_factory=list)


class DeleteDirectoriesRequest(BaseModel):
    directory_paths: List[str] = Field(default_factory=list)


class ScanStarted(BaseModel):
    scan_id: str
    status: ScanStatus


class FileRecordModel(_ApiModel):
    path: str
    name: str
    size: int
    extension: str
    created_at: datetime
    sequence: int
    fingerprint: Optional[str] = None
    category: Optional[str] = None
    is_duplicate: bool
    marked_for_deletion: bool


class ErrorEntryModel(_ApiModel):
    path: str
    message: str


class ProgressModel(_ApiModel):
    scan_id: str
    status: ScanStatus
    total_files: int
    processed_files: int
    duplicate_count: int
    progress_percentage: float
    start_time: datetime
    last_update: datetime
    current_directory: Optional[str] = None
    errors: List[ErrorEntryModel] = Field(default_factory=list)


class ScanResultModel(_ApiModel):
    scan_id: str
    directory: str
    scan_time: datetime
    status: ScanStatus
    files: List[FileRecordModel]
    duplicate_groups: Dict[str, List[FileRecordModel]]
    directory_duplicates: Dict[str, List[FileRecordModel]]
    categorized_files: Dict[str, List[FileRecordModel]]
    total_files: int
    duplicate_count: int
    wasted_size_bytes: int


class LiveDuplicatesModel(BaseModel):
    scan_id: str
    duplicates: List[FileRecordModel]
    count: int
    timestamp: int


class PathOutcomeModel(_ApiModel):
    path: str
    status: DeletionStatus
    message: Optional[str] = None


class DeletionResponse(_ApiModel):
    scan_id: str
    success: bool
    deleted_count: int
    failed_count: int
    outcomes: List[PathOutcomeModel]
    warning: str = "This action cannot be undone"


def _hash_payload(payload: Dict[str, Any]) -> str:
    try:
        encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    except TypeError:
        encoded = repr(payload)
    return hashlib.md5(encoded.encode("utf-8")).hexdigest()[:12]


def create_app(orchestrator: Optional[ScanOrchestrator] = None) -> FastAPI:
    """Build the API around ``orchestrator`` (a new one from env settings by default)."""
    if orchestrator is None:
        orchestrator = ScanOrchestrator(settings=ScannerSettings.from_env())
    settings = orchestrator.settings
    api_logger = configure_logger(settings)
    api_context = build_context(settings, API_COMPONENT)

    def _log_api_event(event: str, message: str, *, level: int = logging.INFO, **fields: Any) -> None:
        log_event(api_logger, event, level, message, api_context, **fields)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        orchestrator.shutdown(wait=False)

    app = FastAPI(
        title="Duplicate Scanner API",
        description="REST API for content-based duplicate file and directory detection.",
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        route = str(request.url.path)
        start = time.perf_counter()
        _log_api_event(
            "api_request",
            "Request received",
            request_id=request_id,
            route=route,
            method=request.method,
            client_ip=request.client.host if request.client else "unknown",
            params_hash=_hash_payload({"query": dict(request.query_params)}),
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            _log_api_event(
                "api_response",
                "Request failed",
                level=logging.ERROR,
                request_id=request_id,
                route=route,
                method=request.method,
                status_code=500,
                duration_ms=duration_ms(start),
                exception_type=exc.__class__.__name__,
                exception_msg=str(exc),
            )
            raise
        _log_api_event(
            "api_response",
            "Request completed" if response.status_code < 400 else "Request failed",
            level=logging.INFO if response.status_code < 400 else logging.WARNING,
            request_id=request_id,
            route=route,
            method=request.method,
            status_code=response.status_code,
            duration_ms=duration_ms(start),
        )
        response.headers["x-request-id"] = request_id
        return response

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/scan", response_model=ScanStarted)
    def start_scan(payload: ScanRequest) -> ScanStarted:
        try:
            scan_id = orchestrator.start_scan(payload.directory)
        except InvalidScanTargetError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        progress = orchestrator.get_progress(scan_id)
        return ScanStarted(scan_id=scan_id, status=progress.status)

    @app.get("/api/scan/{scan_id}", response_model=ScanResultModel)
    def get_scan_result(scan_id: str) -> ScanResultModel:
        result = orchestrator.get_result(scan_id)
        if result is None:
            raise HTTPException(status_code=404, detail=f"Scan result not found: {scan_id}")
        return ScanResultModel.model_validate(result)

    @app.get("/api/scan/{scan_id}/progress", response_model=ProgressModel)
    def get_scan_progress(scan_id: str) -> ProgressModel:
        progress = orchestrator.get_progress(scan_id)
        if progress is None:
            raise HTTPException(status_code=404, detail=f"Scan not found: {scan_id}")
        return ProgressModel.model_validate(progress)

    @app.get("/api/scan/{scan_id}/duplicates/stream", response_model=LiveDuplicatesModel)
    def get_duplicate_stream(scan_id: str) -> LiveDuplicatesModel:
        duplicates = orchestrator.get_live_duplicates(scan_id)
        if duplicates is None:
            raise HTTPException(status_code=404, detail=f"Scan not found: {scan_id}")
        return LiveDuplicatesModel(
            scan_id=scan_id,
            duplicates=[FileRecordModel.model_validate(record) for record in duplicates],
            count=len(duplicates),
            timestamp=int(time.time() * 1000),
        )

    @app.post("/api/scan/{scan_id}/cancel")
    def cancel_scan(scan_id: str) -> Dict[str, Any]:
        if orchestrator.get_progress(scan_id) is None:
            raise HTTPException(status_code=404, detail=f"Scan not found: {scan_id}")
        return {"scan_id": scan_id, "cancelled": orchestrator.cancel(scan_id)}

    @app.get("/api/scans", response_model=List[ScanResultModel])
    def list_scans() -> List[ScanResultModel]:
        return [ScanResultModel.model_validate(result) for result in orchestrator.list_results()]

    @app.delete("/api/duplicates/{scan_id}", response_model=DeletionResponse)
    def delete_files(scan_id: str, payload: DeleteFilesRequest) -> DeletionResponse:
        if not payload.file_paths:
            raise HTTPException(status_code=400, detail="No file paths provided")
        try:
            outcome = orchestrator.delete_files(scan_id, payload.file_paths)
        except JobNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _deletion_response(outcome)

    @app.delete("/api/directories/{scan_id}", response_model=DeletionResponse)
    def delete_directories(scan_id: str, payload: DeleteDirectoriesRequest) -> DeletionResponse:
        if not payload.directory_paths:
            raise HTTPException(status_code=400, detail="No directory paths provided")
        try:
            outcome = orchestrator.delete_directories(scan_id, payload.directory_paths)
        except JobNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _deletion_response(outcome)

    return app


def _deletion_response(outcome: DeletionOutcome) -> DeletionResponse:
    return DeletionResponse(
        scan_id=outcome.scan_id,
        success=outcome.success,
        deleted_count=outcome.deleted_count,
        failed_count=outcome.failed_count,
        outcomes=[PathOutcomeModel.model_validate(item) for item in outcome.outcomes],
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.main:app", host="0.0.0.0", port=8000, reload=True)
