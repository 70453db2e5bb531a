"""
The conversion pipeline: extract -> generate -> illustrate -> encode -> store,
with the job tracker updated at every stage boundary.

Progress milestones: created 5, extracting 10, content_generated 40,
illustrating 40..80 (per slide), illustrated 80, encoding 90, completed 100.
"""
from __future__ import annotations

import asyncio
import os
import re
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Union

from slideit.core.config import settings
from slideit.core.ctx import set_ctx
from slideit.core.logging import get_logger
from slideit.core.metrics import CONVERSIONS, GENERATED_SLIDES, STAGE_LATENCY
from slideit.kernel.errors import InternalError, InvalidRequest, ProblemDetails
from slideit.models.slide import ConversionJob, JobStage, JobStatus, SlideRecord, SourceKind
from slideit.pipeline.encode import artifact_filename, encode
from slideit.pipeline.extract import extract_async
from slideit.pipeline.generate import SlideContentGenerator
from slideit.pipeline.illustrate import Illustrator
from slideit.services.artifacts import ArtifactStore
from slideit.services.tracker import JobTracker

log = get_logger(__name__)

EXTRACTING_PROGRESS = 10
GENERATED_PROGRESS = 40
ILLUSTRATED_PROGRESS = 80
ENCODING_PROGRESS = 90


@dataclass
class PipelineDeps:
    generator: SlideContentGenerator
    illustrator: Illustrator
    tracker: JobTracker
    store: ArtifactStore


@dataclass
class ConversionRequest:
    source_kind: SourceKind
    owner_id: str
    display_name: str
    slide_count: int
    content: Union[bytes, str]


@dataclass
class ConversionResult:
    job: ConversionJob
    slides: List[SlideRecord]
    artifact_location: str


def validate_slide_count(n: int) -> int:
    if n is None or int(n) <= 0:
        raise InvalidRequest("slides must be a positive integer", slides=n)
    if settings.MAX_SLIDE_COUNT and int(n) > settings.MAX_SLIDE_COUNT:
        raise InvalidRequest(f"slides may not exceed {settings.MAX_SLIDE_COUNT}", slides=n)
    return int(n)


@contextmanager
def _stage(name: JobStage) -> Iterator[None]:
    set_ctx(stage=name.value)
    start = time.perf_counter()
    try:
        yield
    finally:
        STAGE_LATENCY.labels(stage=name.value).observe(time.perf_counter() - start)


_KEY_SAFE = re.compile(r"[^A-Za-z0-9_.\-]+")


def _artifact_key(owner_id: str, job_id: str, display_name: str) -> str:
    owner = _KEY_SAFE.sub("_", owner_id).strip("._") or "anonymous"
    return f"{owner}/{job_id}/{artifact_filename(display_name)}"


def _fallback_topic(request: ConversionRequest) -> str:
    if request.source_kind == SourceKind.AI_TOPIC:
        return str(request.content).strip()
    stem, _ = os.path.splitext(os.path.basename(request.display_name or ""))
    return stem.strip()


async def _fail(deps: PipelineDeps, job: ConversionJob, err: ProblemDetails) -> None:
    set_ctx(stage=JobStage.FAILED.value)
    CONVERSIONS.labels(kind=job.source_kind.value, status="failed").inc()
    try:
        await deps.tracker.update(
            job.id,
            status=JobStatus.FAILED,
            stage=JobStage.FAILED,
            error=err.message,
            error_code=err.code,
        )
    except Exception:
        log.exception("could not mark job %s failed", job.id)


async def run_conversion(deps: PipelineDeps, request: ConversionRequest) -> ConversionResult:
    kind = SourceKind(request.source_kind)
    count = validate_slide_count(request.slide_count)
    if kind == SourceKind.AI_TOPIC and not str(request.content or "").strip():
        raise InvalidRequest("topic is required")

    job = await deps.tracker.create(request.owner_id, request.display_name, kind)
    set_ctx(job_id=job.id, owner_id=request.owner_id, stage=JobStage.CREATED.value)
    log.info("conversion started kind=%s slides=%d", kind.value, count)

    try:
        if kind == SourceKind.AI_TOPIC:
            source = str(request.content).strip()
        else:
            with _stage(JobStage.EXTRACTING):
                await deps.tracker.update(job.id, stage=JobStage.EXTRACTING, progress_percent=EXTRACTING_PROGRESS)
                source = await extract_async(kind, request.content)

        with _stage(JobStage.GENERATING):
            await deps.tracker.update(job.id, stage=JobStage.GENERATING)
            slides = await deps.generator.generate(source, count, is_topic=kind == SourceKind.AI_TOPIC)
        GENERATED_SLIDES.labels(kind=kind.value).inc(len(slides))
        await deps.tracker.update(
            job.id, stage=JobStage.CONTENT_GENERATED, progress_percent=GENERATED_PROGRESS, slides=slides
        )

        async def _on_progress(done: int, total: int) -> None:
            span = ILLUSTRATED_PROGRESS - GENERATED_PROGRESS
            await deps.tracker.update(
                job.id,
                stage=JobStage.ILLUSTRATING,
                progress_percent=GENERATED_PROGRESS + (span * done) // max(total, 1),
            )

        with _stage(JobStage.ILLUSTRATING):
            await deps.tracker.update(job.id, stage=JobStage.ILLUSTRATING)
            slides = await deps.illustrator.illustrate(
                slides, fallback_topic=_fallback_topic(request) or None, on_progress=_on_progress
            )
        await deps.tracker.update(
            job.id, stage=JobStage.ILLUSTRATED, progress_percent=ILLUSTRATED_PROGRESS, slides=slides
        )

        with _stage(JobStage.ENCODING):
            await deps.tracker.update(job.id, stage=JobStage.ENCODING, progress_percent=ENCODING_PROGRESS)
            data = await asyncio.to_thread(encode, slides)

        with _stage(JobStage.UPLOADING):
            await deps.tracker.update(job.id, stage=JobStage.UPLOADING)
            location = await deps.store.put(_artifact_key(request.owner_id, job.id, request.display_name), data)

        job = await deps.tracker.update(
            job.id, status=JobStatus.COMPLETED, stage=JobStage.COMPLETED, artifact_location=location
        )
    except ProblemDetails as e:
        log.warning("conversion failed: %s", e)
        await _fail(deps, job, e)
        raise
    except Exception as e:
        log.exception("conversion crashed")
        err = InternalError(str(e) or type(e).__name__)
        await _fail(deps, job, err)
        raise err from e

    set_ctx(stage=JobStage.COMPLETED.value)
    CONVERSIONS.labels(kind=kind.value, status="completed").inc()
    log.info("conversion completed: %d slides -> %s", len(slides), location)
    return ConversionResult(job=job, slides=slides, artifact_location=location)


async def build_artifact(slides: List[SlideRecord]) -> bytes:
    return await asyncio.to_thread(encode, slides)

