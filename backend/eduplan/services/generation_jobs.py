from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
import logging
from threading import Lock
import uuid

from eduplan.core.config import Settings, get_settings
from eduplan.core.exceptions import AppError, ResourceNotFoundError
from eduplan.schemas.generator import (
    GenerateTimetableRequest,
    GenerateTimetableResponse,
    GenerationJobOut,
    GenerationProgress,
)
from eduplan.services.generation import run_generation
from eduplan.services.progress import ProgressChannel, ProgressThrottle

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


FINISHED_STATUSES = frozenset({"completed", "error"})


class GenerationJobStore:
    """In-memory job registry.

    Finished jobs are kept for `retention_seconds` and evicted oldest-first
    once more than `max_jobs` are held. Pending and processing jobs are never
    evicted.
    """

    def __init__(
        self,
        *,
        retention_seconds: float = 3600.0,
        max_jobs: int = 200,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._jobs: dict[str, GenerationJobOut] = {}
        self._cancelled: set[str] = set()
        self._lock = Lock()
        self._retention = timedelta(seconds=max(0.0, retention_seconds))
        self._max_jobs = max(1, max_jobs)
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationJobStore":
        return cls(retention_seconds=settings.job_retention_seconds, max_jobs=settings.max_jobs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _evict_locked(self, now: datetime, room: int = 0) -> None:
        finished = sorted(
            (job for job in self._jobs.values() if job.status in FINISHED_STATUSES),
            key=lambda job: job.updated_at,
        )
        overflow = len(self._jobs) + room - self._max_jobs
        for job in finished:
            if now - job.updated_at < self._retention and overflow <= 0:
                break
            del self._jobs[job.id]
            self._cancelled.discard(job.id)
            overflow -= 1
        if overflow > 0:
            logger.warning("Job registry holds %d active jobs (max_jobs=%d)", len(self._jobs), self._max_jobs)

    def create(self) -> GenerationJobOut:
        now = self._clock()
        job = GenerationJobOut(id=str(uuid.uuid4()), status="pending", created_at=now, updated_at=now)
        with self._lock:
            self._evict_locked(now, room=1)
            self._jobs[job.id] = job
            return job.model_copy(deep=True)

    def get(self, job_id: str) -> GenerationJobOut:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise ResourceNotFoundError("Generation job", job_id)
            return job.model_copy(deep=True)

    def _update(self, job_id: str, **changes) -> None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise ResourceNotFoundError("Generation job", job_id)
            for key, value in changes.items():
                setattr(job, key, value)
            job.updated_at = self._clock()
            if job.status in FINISHED_STATUSES:
                self._cancelled.discard(job_id)

    def mark_processing(self, job_id: str) -> None:
        self._update(job_id, status="processing")

    def update_progress(self, job_id: str, current: int, total: int) -> None:
        self._update(job_id, progress=GenerationProgress(current=current, total=total))

    def complete(self, job_id: str, response: GenerateTimetableResponse) -> None:
        self._update(
            job_id,
            status="completed",
            progress=GenerationProgress(current=response.placed_count, total=response.total_lessons),
            result=list(response.schedule),
            failures=list(response.failures),
            warnings=list(response.warnings),
        )

    def fail(self, job_id: str, message: str) -> None:
        self._update(job_id, status="error", error=message)

    def request_cancel(self, job_id: str) -> GenerationJobOut:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise ResourceNotFoundError("Generation job", job_id)
            if job.status not in FINISHED_STATUSES:
                self._cancelled.add(job_id)
            return job.model_copy(deep=True)

    def is_cancelled(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._cancelled

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()
            self._cancelled.clear()


generation_jobs = GenerationJobStore.from_settings(get_settings())


def get_job_store() -> GenerationJobStore:
    return generation_jobs


def run_generation_job(
    job_id: str,
    request: GenerateTimetableRequest,
    *,
    store: GenerationJobStore,
    settings: Settings,
) -> None:
    store.mark_processing(job_id)
    channel = ProgressChannel(
        lambda current, total: store.update_progress(job_id, current, total),
        name=f"progress-{job_id[:8]}",
    )
    throttle = ProgressThrottle(channel, interval_seconds=settings.progress_interval_seconds)

    try:
        response = run_generation(
            request,
            settings=settings,
            on_progress=throttle,
            should_cancel=lambda: store.is_cancelled(job_id),
        )
    except AppError as exc:
        logger.warning("Generation job %s rejected: %s", job_id, exc.message)
        store.fail(job_id, exc.message)
        return
    except Exception as exc:
        logger.exception("Fatal error in generation job %s", job_id)
        store.fail(job_id, str(exc))
        return
    finally:
        throttle.flush()
        channel.close()

    store.complete(job_id, response)
    logger.info(
        "Generation job %s completed: %d/%d lessons placed",
        job_id,
        response.placed_count,
        response.total_lessons,
    )
