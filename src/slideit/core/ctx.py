# src/slideit/core/ctx.py
from __future__ import annotations
import contextvars
from typing import Optional, Mapping

_job_id   = contextvars.ContextVar("job_id",   default=None)
_owner_id = contextvars.ContextVar("owner_id", default=None)
_stage    = contextvars.ContextVar("stage",    default=None)
_trace_id = contextvars.ContextVar("trace_id", default=None)

def set_ctx(*, job_id: Optional[str]=None, owner_id: Optional[str]=None,
            stage: Optional[str]=None, trace_id: Optional[str]=None) -> None:
    if job_id is not None:   _job_id.set(job_id)
    if owner_id is not None: _owner_id.set(owner_id)
    if stage is not None:    _stage.set(stage)
    if trace_id is not None: _trace_id.set(trace_id)

def get_ctx() -> Mapping[str, Optional[str]]:
    return {
        "job_id":   _job_id.get(),
        "owner_id": _owner_id.get(),
        "stage":    _stage.get(),
        "trace_id": _trace_id.get(),
    }
