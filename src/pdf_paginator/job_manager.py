"""
Job orchestration and lifecycle management for the paginator service.

This module manages the end-to-end lifecycle of pagination jobs:
- Job validation, creation and registration
- Background execution on a thread pool
- Status, progress and event tracking
- Cooperative cancellation between pages

Each job owns its own JobRecord (settings, progress, cancellation flag and
output directory); the pipeline it runs keeps no state of its own, so jobs
running side by side never share mutable data or output paths.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from .assets import load_assets_from_settings
from .configuration import REMOTE_OVERRIDABLE_KEYS, build_config_metadata, load_settings
from .errors import InvalidRequest, JobCancelled, PaginatorError
from .models import ConfigMetadata, JobDetail, JobEvent, JobStatus, JobSummary, PageProgress, PaginatorSettings
from .pipeline import DocumentResult, paginate_pages, prepare_pages
from .sequencer import PageDescriptor, ProgressObserver
from .utils import ensure_directory, sanitize_label

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}


@dataclass
class JobRecord:
    """
    Internal representation of a pagination job with full state.

    Attributes:
        id: Unique job identifier (hex UUID)
        title: Document title drawn on the pages
        label: Filesystem-safe label with unique suffix (e.g., "report-a1b2c3d4")
        status: Current execution status
        created_at: Job creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
        page_count: Number of pages submitted
        settings: Effective settings (defaults merged with overrides)
        submitted_overrides: Configuration values submitted by the client
        output_path: Destination of the generated PDF
        return_pdf: Whether the PDF bytes are handed back through the job future
        progress: Latest page progress
        cancel_event: Set to stop the job before its next page
        error: Error message if job failed
        events: Chronological list of job lifecycle events
    """

    id: str
    title: str
    label: str
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    page_count: int
    settings: PaginatorSettings
    submitted_overrides: Dict[str, Any]
    output_path: Path
    return_pdf: bool = False
    progress: Optional[PageProgress] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    error: Optional[str] = None
    events: list[JobEvent] = field(default_factory=list)

    def to_summary(self) -> JobSummary:
        return JobSummary(
            id=self.id,
            label=self.label,
            title=self.title,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            page_count=self.page_count,
            progress=self.progress,
            output_path=str(self.output_path),
            pdf_available=self.status == JobStatus.COMPLETED and self.output_path.exists(),
        )

    def to_detail(self) -> JobDetail:
        summary = self.to_summary()
        return JobDetail(
            **summary.model_dump(),
            submitted_overrides=self.submitted_overrides,
            events=list(self.events),
            error=self.error,
        )


class JobManager:
    """
    Central coordinator for job lifecycle management.

    Thread Safety:
        The job registry and every record mutation are guarded by one lock;
        HTTP handlers, WebSocket handlers and worker threads all go through
        the lock-protected helpers below.

    Attributes:
        output_root: Base directory for per-job output directories
    """

    def __init__(self, output_root: Path | None = None, max_workers: int = 2) -> None:
        """
        Initialize the job manager.

        Args:
            output_root: Base directory for job outputs (default: ./output)
            max_workers: Number of jobs that may run at the same time
        """
        self.output_root = ensure_directory(Path(output_root or "output"))
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = Lock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="paginator-job")
        self._config_metadata: ConfigMetadata | None = None

    def list_jobs(self) -> list[JobSummary]:
        """All jobs, newest first."""
        with self._lock:
            records = sorted(self._jobs.values(), key=lambda r: r.created_at, reverse=True)
            return [record.to_summary() for record in records]

    def get_job(self, job_id: str) -> Optional[JobDetail]:
        with self._lock:
            record = self._jobs.get(job_id)
            return record.to_detail() if record else None

    def get_output(self, job_id: str) -> Optional[Path]:
        """Path of the finished PDF, or None while the job has not completed."""
        with self._lock:
            record = self._jobs.get(job_id)
            if record is None or record.status != JobStatus.COMPLETED:
                return None
            return record.output_path

    def get_config_metadata(self) -> ConfigMetadata:
        """Defaults, remotely overridable keys and notes (built once)."""
        if self._config_metadata is None:
            self._config_metadata = build_config_metadata()
        return self._config_metadata

    def _register_job(self, record: JobRecord) -> JobSummary:
        """Store the record and return its summary as registered."""
        with self._lock:
            self._jobs[record.id] = record
            return record.to_summary()

    def _update_job(self, job_id: str, **kwargs: Any) -> None:
        """Update job attributes and refresh the updated_at timestamp."""
        with self._lock:
            record = self._jobs[job_id]
            for key, value in kwargs.items():
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()

    def _append_event(self, job_id: str, message: str) -> None:
        event = JobEvent(timestamp=datetime.utcnow(), message=message)
        with self._lock:
            record = self._jobs[job_id]
            record.events.append(event)
            record.updated_at = event.timestamp

    @staticmethod
    def _check_overrides(overrides: Dict[str, Any]) -> None:
        forbidden: List[str] = []
        for section, value in overrides.items():
            if section not in REMOTE_OVERRIDABLE_KEYS:
                forbidden.append(section)
                continue
            allowed = REMOTE_OVERRIDABLE_KEYS[section]
            if allowed is not None and isinstance(value, dict):
                forbidden.extend(f"{section}.{key}" for key in value if key not in allowed)
        if forbidden:
            raise InvalidRequest(f"Overrides not allowed for: {', '.join(sorted(forbidden))}")

    def create_job(
        self,
        title: str,
        files: List[Tuple[str, bytes]],
        overrides: Optional[Dict[str, Any]] = None,
        return_pdf: bool = False,
        observer: Optional[ProgressObserver] = None,
    ) -> Tuple[JobSummary, Future]:
        """
        Validate a request, register the job and submit it for execution.

        Validation happens here, before anything is queued: a blank title,
        an empty file list, an invalid filename, a duplicate page number or
        bad overrides reject the request without creating a job.

        Args:
            title: Document title
            files: ``(filename, image bytes)`` pairs in any order
            overrides: Per-job configuration overrides (layout and jobs sections)
            return_pdf: Keep the PDF bytes in memory for the caller
            observer: Extra progress callback, e.g. a WebSocket forwarder

        Returns:
            The job summary and a future resolving to the DocumentResult

        Raises:
            InvalidRequest, InvalidPageName, DuplicatePageOrdinal
        """
        if not title or not title.strip():
            raise InvalidRequest("Document title is required")
        if not files:
            raise InvalidRequest("At least one file is required")

        if overrides is not None and not isinstance(overrides, dict):
            raise InvalidRequest("Overrides must be an object")
        submitted_overrides = dict(overrides or {})
        self._check_overrides(submitted_overrides)
        settings = load_settings(submitted_overrides)
        pages = prepare_pages(files, allow_duplicates=settings.jobs.allow_duplicate_ordinals)

        job_id = uuid4().hex
        safe_label = sanitize_label(title, fallback=f"job-{job_id[:8]}")
        # Append short job ID so two jobs never share an output directory
        label = f"{safe_label}-{job_id[:8]}"
        output_path = self.output_root / label / settings.output.filename

        now = datetime.utcnow()
        record = JobRecord(
            id=job_id,
            title=title,
            label=label,
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
            page_count=len(pages),
            settings=settings,
            submitted_overrides=submitted_overrides,
            output_path=output_path,
            return_pdf=return_pdf,
        )
        record.events.append(JobEvent(timestamp=now, message=f"Job registered with {len(pages)} page(s)."))
        summary = self._register_job(record)
        logger.info(f"Job {job_id}: \"{title}\" with {len(pages)} page(s) queued")

        future = self._executor.submit(self._run_job, job_id, pages, observer)
        return summary, future

    def _progress_recorder(self, job_id: str, observer: Optional[ProgressObserver]) -> ProgressObserver:
        def _record(progress: PageProgress) -> None:
            self._update_job(job_id, progress=progress)
            self._append_event(job_id, f"Page {progress.page} processed ({progress.current}/{progress.total}).")
            if observer is not None:
                observer(progress)

        return _record

    def _run_job(
        self,
        job_id: str,
        pages: List[PageDescriptor],
        observer: Optional[ProgressObserver] = None,
    ) -> DocumentResult:
        """
        Execute the pipeline for a job (runs in a worker thread).

        Failures are recorded on the job and re-raised so that callers waiting
        on the future see them too. The output file only exists once the whole
        document has been written.
        """
        self._update_job(job_id, status=JobStatus.RUNNING)
        self._append_event(job_id, "Processing started.")

        with self._lock:
            record = self._jobs[job_id]
            title = record.title
            settings = record.settings
            output_path = record.output_path
            return_pdf = record.return_pdf
            cancel_event = record.cancel_event

        try:
            assets = load_assets_from_settings(settings.assets)
            result = paginate_pages(
                pages,
                title,
                assets,
                settings,
                destination=output_path,
                observer=self._progress_recorder(job_id, observer),
                cancel_event=cancel_event,
                return_bytes=return_pdf,
            )
        except JobCancelled as exc:
            self._update_job(job_id, status=JobStatus.CANCELLED, error=str(exc))
            self._append_event(job_id, "Job cancelled.")
            logger.info(f"Job {job_id} cancelled")
            raise
        except PaginatorError as exc:
            self._update_job(job_id, status=JobStatus.FAILED, error=str(exc))
            self._append_event(job_id, f"Job failed: {exc}")
            logger.error(f"Job {job_id} failed: {exc}")
            raise
        except Exception as exc:
            self._update_job(job_id, status=JobStatus.FAILED, error=str(exc))
            self._append_event(job_id, f"Job failed: {exc}")
            logger.exception(f"Job {job_id} failed unexpectedly")
            raise

        self._update_job(job_id, status=JobStatus.COMPLETED)
        self._append_event(job_id, f"PDF generated: {output_path}")
        logger.info(f"Job {job_id} completed: {output_path}")
        return result

    def cancel_job(self, job_id: str) -> JobSummary:
        """
        Request cancellation; the job stops before its next page.

        Raises:
            KeyError: If job_id doesn't exist
            RuntimeError: If the job has already finished
        """
        with self._lock:
            record = self._jobs[job_id]
            if record.status in TERMINAL_STATUSES:
                raise RuntimeError(f"Job is already {record.status.value}.")
            record.cancel_event.set()
        self._append_event(job_id, "Cancellation requested.")
        with self._lock:
            return self._jobs[job_id].to_summary()

    def shutdown(self) -> None:
        """Stop accepting work and signal running jobs to stop."""
        with self._lock:
            for record in self._jobs.values():
                if record.status not in TERMINAL_STATUSES:
                    record.cancel_event.set()
        self._executor.shutdown(wait=False, cancel_futures=True)
