# FastAPI dependencies. Tests swap these via app.dependency_overrides.
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from slideit.pipeline.generate import SlideContentGenerator
from slideit.pipeline.illustrate import Illustrator
from slideit.pipeline.retry import PacingPolicy, RetryPolicy
from slideit.pipeline.runner import PipelineDeps
from slideit.services.artifacts import ArtifactStore, build_artifact_store
from slideit.services.images import build_image_client
from slideit.services.llm import get_chat
from slideit.services.tracker import JobTracker, build_tracker


@lru_cache(maxsize=1)
def _tracker() -> JobTracker:
    return build_tracker()


@lru_cache(maxsize=1)
def _generator() -> SlideContentGenerator:
    return SlideContentGenerator(get_chat())


@lru_cache(maxsize=1)
def _illustrator() -> Illustrator:
    return Illustrator(build_image_client(), RetryPolicy.from_settings(), PacingPolicy.from_settings())


@lru_cache(maxsize=1)
def _store() -> ArtifactStore:
    return build_artifact_store()


def get_tracker() -> JobTracker:
    return _tracker()


def get_pipeline_deps(tracker: JobTracker = Depends(get_tracker)) -> PipelineDeps:
    return PipelineDeps(
        generator=_generator(),
        illustrator=_illustrator(),
        tracker=tracker,
        store=_store(),
    )
