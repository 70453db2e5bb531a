"""
Conversion job tracking.

The pipeline is the only writer for a given job id; readers (the history
endpoints, polling clients) only ever see states produced by `apply_update`,
which is where every transition rule lives:

  * progress never decreases
  * status moves processing -> completed | failed, never back
  * terminal states carry progress 100
  * artifact_location is set exactly when status is completed
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from slideit.core.config import settings
from slideit.core.logging import get_logger
from slideit.kernel.errors import JobNotFound, JobStateError
from slideit.models.job import ConversionJobRow
from slideit.models.slide import ConversionJob, JobStage, JobStatus, SlideRecord, SourceKind

log = get_logger(__name__)

CREATED_PROGRESS = 5

_UPDATABLE = {"status", "stage", "progress_percent", "slides", "artifact_location", "error", "error_code"}


class JobTracker(Protocol):
    async def create(self, owner_id: str, source_file_name: str, source_kind: SourceKind) -> ConversionJob: ...
    async def update(self, job_id: str, **changes: Any) -> ConversionJob: ...
    async def get(self, job_id: str) -> Optional[ConversionJob]: ...
    async def list_for_owner(self, owner_id: str) -> List[ConversionJob]: ...
    async def delete(self, job_id: str, owner_id: str) -> bool: ...


def new_job(owner_id: str, source_file_name: str, source_kind: SourceKind) -> ConversionJob:
    return ConversionJob(
        id=uuid.uuid4().hex,
        owner_id=owner_id,
        source_file_name=source_file_name,
        source_kind=source_kind,
        status=JobStatus.PROCESSING,
        stage=JobStage.CREATED,
        progress_percent=CREATED_PROGRESS,
        slides=[],
    )


def _coerce_slides(slides: Sequence[Any]) -> List[SlideRecord]:
    return [s if isinstance(s, SlideRecord) else SlideRecord.model_validate(s) for s in slides]


def apply_update(job: ConversionJob, changes: Dict[str, Any]) -> ConversionJob:
    unknown = set(changes) - _UPDATABLE
    if unknown:
        raise JobStateError(f"unknown job fields: {sorted(unknown)}")
    if job.status != JobStatus.PROCESSING:
        raise JobStateError(f"job {job.id} is {job.status.value}; terminal jobs are immutable")

    status = JobStatus(changes.get("status", job.status))
    stage = JobStage(changes.get("stage", job.stage))
    progress = int(changes.get("progress_percent", job.progress_percent))
    location = changes.get("artifact_location", job.artifact_location)

    if status != JobStatus.PROCESSING:
        progress = 100
    if progress < job.progress_percent:
        raise JobStateError(f"progress may not decrease ({job.progress_percent} -> {progress})")
    if not 0 <= progress <= 100:
        raise JobStateError(f"progress out of range: {progress}")
    if status == JobStatus.COMPLETED and not location:
        raise JobStateError("a completed job needs an artifact location")
    if status != JobStatus.COMPLETED and location:
        raise JobStateError("artifact location is only set on completion")

    update: Dict[str, Any] = {
        "status": status,
        "stage": stage,
        "progress_percent": progress,
        "artifact_location": location,
        "updated_at": datetime.now(timezone.utc),
    }
    if "slides" in changes:
        update["slides"] = _coerce_slides(changes["slides"])
    if "error" in changes:
        update["error"] = changes["error"]
    if "error_code" in changes:
        update["error_code"] = changes["error_code"]
    return job.model_copy(update=update)


# ---------------- in-memory ----------------

class InMemoryJobTracker:
    def __init__(self):
        self._jobs: Dict[str, ConversionJob] = {}
        self._lock = asyncio.Lock()

    async def create(self, owner_id: str, source_file_name: str, source_kind: SourceKind) -> ConversionJob:
        async with self._lock:
            job = new_job(owner_id, source_file_name, source_kind)
            self._jobs[job.id] = job
            return job

    async def update(self, job_id: str, **changes: Any) -> ConversionJob:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFound(job_id)
            job = apply_update(job, changes)
            self._jobs[job_id] = job
            return job

    async def get(self, job_id: str) -> Optional[ConversionJob]:
        return self._jobs.get(job_id)

    async def list_for_owner(self, owner_id: str) -> List[ConversionJob]:
        jobs = [j for j in self._jobs.values() if j.owner_id == owner_id]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    async def delete(self, job_id: str, owner_id: str) -> bool:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.owner_id != owner_id:
                return False
            del self._jobs[job_id]
            return True


# ---------------- SQLAlchemy ----------------

def _row_to_job(row: ConversionJobRow) -> ConversionJob:
    return ConversionJob(
        id=row.id,
        owner_id=row.owner_id,
        source_file_name=row.source_file_name,
        source_kind=SourceKind(row.source_kind),
        status=JobStatus(row.status),
        stage=JobStage(row.stage),
        progress_percent=row.progress_percent,
        slides=[SlideRecord.model_validate(s) for s in (row.slides or [])],
        artifact_location=row.artifact_location,
        error=row.error,
        error_code=row.error_code,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _copy_into_row(job: ConversionJob, row: ConversionJobRow) -> None:
    row.owner_id = job.owner_id
    row.source_file_name = job.source_file_name
    row.source_kind = job.source_kind.value
    row.status = job.status.value
    row.stage = job.stage.value
    row.progress_percent = job.progress_percent
    row.slides = [s.dump() for s in job.slides]
    row.artifact_location = job.artifact_location
    row.error = job.error
    row.error_code = job.error_code
    row.created_at = job.created_at
    row.updated_at = job.updated_at


class SqlJobTracker:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sessions = session_factory

    async def create(self, owner_id: str, source_file_name: str, source_kind: SourceKind) -> ConversionJob:
        job = new_job(owner_id, source_file_name, source_kind)
        async with self._sessions() as session:
            row = ConversionJobRow(id=job.id)
            _copy_into_row(job, row)
            session.add(row)
            await session.commit()
        return job

    async def update(self, job_id: str, **changes: Any) -> ConversionJob:
        async with self._sessions() as session:
            row = await session.get(ConversionJobRow, job_id)
            if row is None:
                raise JobNotFound(job_id)
            job = apply_update(_row_to_job(row), changes)
            _copy_into_row(job, row)
            await session.commit()
            return job

    async def get(self, job_id: str) -> Optional[ConversionJob]:
        async with self._sessions() as session:
            row = await session.get(ConversionJobRow, job_id)
            return _row_to_job(row) if row is not None else None

    async def list_for_owner(self, owner_id: str) -> List[ConversionJob]:
        async with self._sessions() as session:
            rows = (
                await session.execute(
                    select(ConversionJobRow)
                    .where(ConversionJobRow.owner_id == owner_id)
                    .order_by(ConversionJobRow.created_at.desc())
                )
            ).scalars().all()
            return [_row_to_job(r) for r in rows]

    async def delete(self, job_id: str, owner_id: str) -> bool:
        async with self._sessions() as session:
            row = await session.get(ConversionJobRow, job_id)
            if row is None or row.owner_id != owner_id:
                return False
            await session.delete(row)
            await session.commit()
            return True


def build_tracker() -> JobTracker:
    kind = (settings.JOB_STORE or "memory").lower()
    if kind == "sql":
        from slideit.services.db import get_async_sessionmaker
        log.info("job tracker: sql (%s)", settings.DATABASE_URL.split("@")[-1])
        return SqlJobTracker(get_async_sessionmaker())
    log.info("job tracker: in-memory")
    return InMemoryJobTracker()
