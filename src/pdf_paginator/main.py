from __future__ import annotations

import asyncio
import base64
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends, FastAPI, Header, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import ValidationError

from . import __version__
from .configuration import load_settings
from .errors import PaginatorError
from .job_manager import JobManager
from .key_manager import KeyManager
from .models import (
    ConfigMetadata,
    HealthStatus,
    JobDetail,
    JobSummary,
    PageFile,
    PageProgress,
    ProcessRequest,
    ProcessResponse,
)
from .utils import decode_base64_payload

logger = logging.getLogger(__name__)

settings = load_settings()
job_manager = JobManager(output_root=Path(settings.output.dir), max_workers=settings.jobs.max_workers)
key_manager = KeyManager(key_file=Path(settings.server.api_key_file))


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    job_manager.shutdown()


app = FastAPI(title="PDF Paginator Agent", version=__version__, lifespan=lifespan)

allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_job_manager() -> JobManager:
    return job_manager


def require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    if not key_manager.validate_key(x_api_key):
        raise HTTPException(status_code=401, detail="Unauthorized: Invalid API key")


def _decode_files(files: List[PageFile]) -> List[Tuple[str, bytes]]:
    return [(file.name, decode_base64_payload(file.data, file.name)) for file in files]


@app.get("/health", response_model=HealthStatus)
def healthcheck() -> HealthStatus:
    return HealthStatus(status="online", version=__version__, capabilities=["pdf-generation", "batch-upload"])


@app.get("/config/defaults", response_model=ConfigMetadata, dependencies=[Depends(require_api_key)])
def get_config_defaults(manager: JobManager = Depends(get_job_manager)) -> ConfigMetadata:
    return manager.get_config_metadata()


@app.post(
    "/process",
    response_model=ProcessResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_api_key)],
)
async def process(
    payload: ProcessRequest,
    x_return_pdf: Optional[str] = Header(default=None),
    manager: JobManager = Depends(get_job_manager),
) -> ProcessResponse:
    return_pdf = (x_return_pdf or "").lower() == "true"
    try:
        files = _decode_files(payload.files)
        summary, future = manager.create_job(payload.title, files, payload.overrides, return_pdf=return_pdf)
    except PaginatorError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if not return_pdf:
        return ProcessResponse(job_id=summary.id, status="processing", message="PDF generation started")

    try:
        result = await asyncio.wrap_future(future)
    except Exception as exc:  # noqa: BLE001
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return ProcessResponse(
        job_id=summary.id,
        status="completed",
        saved_path=str(result.path),
        pdf_data=base64.b64encode(result.pdf_bytes or b"").decode("ascii"),
    )


@app.get("/jobs", response_model=list[JobSummary], dependencies=[Depends(require_api_key)])
def list_jobs(manager: JobManager = Depends(get_job_manager)) -> list[JobSummary]:
    return manager.list_jobs()


@app.get("/jobs/{job_id}", response_model=JobDetail, dependencies=[Depends(require_api_key)])
@app.get("/job/{job_id}", response_model=JobDetail, dependencies=[Depends(require_api_key)])
def get_job(job_id: str, manager: JobManager = Depends(get_job_manager)) -> JobDetail:
    job = manager.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@app.get("/jobs/{job_id}/status", dependencies=[Depends(require_api_key)])
def job_status(job_id: str, manager: JobManager = Depends(get_job_manager)) -> Dict[str, Any]:
    job = manager.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return {
        "status": job.status,
        "progress": job.progress,
        "error": job.error,
        "pdf_available": job.pdf_available,
    }


@app.get("/jobs/{job_id}/download", dependencies=[Depends(require_api_key)])
def download(job_id: str, manager: JobManager = Depends(get_job_manager)) -> FileResponse:
    if not manager.get_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found")
    output = manager.get_output(job_id)
    if output is None or not output.is_file():
        raise HTTPException(status_code=404, detail="Document not available")
    return FileResponse(output, media_type="application/pdf", filename=output.name)


@app.post("/jobs/{job_id}/cancel", response_model=JobSummary, dependencies=[Depends(require_api_key)])
def cancel_job(job_id: str, manager: JobManager = Depends(get_job_manager)) -> JobSummary:
    try:
        return manager.cancel_job(job_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Job not found") from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


async def _run_websocket_job(websocket: WebSocket, message: Dict[str, Any]) -> None:
    """Start a job for a WebSocket ``process`` command and stream its progress."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[Optional[PageProgress]] = asyncio.Queue()

    def _forward(progress: PageProgress) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, progress)

    try:
        raw_files = message.get("files") or []
        if not isinstance(raw_files, list):
            raw_files = []
        files = _decode_files([PageFile.model_validate(item) for item in raw_files])
        summary, future = job_manager.create_job(
            str(message.get("title") or ""),
            files,
            message.get("overrides"),
            return_pdf=bool(message.get("returnPdf")),
            observer=_forward,
        )
    except (PaginatorError, ValidationError) as exc:
        await websocket.send_json({"type": "error", "error": str(exc)})
        return

    future.add_done_callback(lambda _: loop.call_soon_threadsafe(queue.put_nowait, None))
    logger.info(f"Processing: \"{summary.title}\" with {summary.page_count} file(s)")
    await websocket.send_json(
        {"type": "status", "status": "processing", "jobId": summary.id, "message": "Starting PDF generation..."}
    )

    try:
        while (progress := await queue.get()) is not None:
            await websocket.send_json({"type": "progress", "progress": progress.model_dump()})
    except WebSocketDisconnect:
        try:
            job_manager.cancel_job(summary.id)
        except RuntimeError:
            pass
        raise

    try:
        result = future.result()
    except Exception as exc:  # noqa: BLE001
        await websocket.send_json({"type": "error", "jobId": summary.id, "error": str(exc)})
        return

    pdf_data = base64.b64encode(result.pdf_bytes).decode("ascii") if result.pdf_bytes else None
    await websocket.send_json(
        {"type": "completed", "jobId": summary.id, "savedPath": str(result.path), "pdfData": pdf_data}
    )


@app.websocket("/")
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    logger.info("WebSocket client connected")
    authenticated = False

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
                if not isinstance(message, dict):
                    raise ValueError("message must be a JSON object")
            except ValueError:
                await websocket.send_json({"type": "error", "error": "Invalid message format"})
                continue

            kind = message.get("type")
            if kind == "authenticate":
                if key_manager.validate_key(message.get("apiKey")):
                    authenticated = True
                    await websocket.send_json({"type": "authenticated", "success": True})
                    logger.info("Client authenticated successfully")
                else:
                    await websocket.send_json({"type": "authenticated", "success": False, "error": "Invalid API key"})
                    await websocket.close()
                    return
                continue

            if not authenticated:
                await websocket.send_json({"type": "error", "error": "Not authenticated"})
                continue

            if kind == "process":
                await _run_websocket_job(websocket, message)
            else:
                await websocket.send_json({"type": "error", "error": f"Unknown message type: {kind}"})
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
