# src/slideit/main.py
from __future__ import annotations

import os
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from slideit.core.config import settings
from slideit.core.ctx import set_ctx
from slideit.core.logging import get_logger
from slideit.core.metrics import MetricsMiddleware, metrics_app
from slideit.core.observability import setup_otel
from slideit.core.request_size_middleware import MaxBodySizeMiddleware
from slideit.kernel.errors import ProblemDetails

from slideit.api.routes.convert import router as convert_router
from slideit.api.routes.jobs import router as jobs_router

log = get_logger(__name__)

app = FastAPI(title="SlideIt Backend", version="1.0.0")

# ---- Middlewares (order matters) ----
app.add_middleware(MetricsMiddleware)
app.add_middleware(MaxBodySizeMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    # the request id doubles as the trace_id on every log line of this request
    req_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    set_ctx(trace_id=req_id)
    response = await call_next(request)
    response.headers["X-Request-Id"] = req_id
    return response


# Ensure the artifacts dir exists (local store)
os.makedirs(settings.ARTIFACTS_DIR, exist_ok=True)
app.mount(
    "/artifacts",
    StaticFiles(directory=settings.ARTIFACTS_DIR, check_dir=False),
    name="artifacts",
)

# Prometheus metrics
app.mount("/metrics", metrics_app)

# Telemetry
setup_otel(app)


# ---- Error envelope ----
@app.exception_handler(ProblemDetails)
async def problem_handler(request: Request, exc: ProblemDetails):
    return JSONResponse(
        {"success": False, "error": exc.message, "code": exc.code},
        status_code=exc.status,
    )


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError):
    missing = [".".join(str(p) for p in e.get("loc", ())[1:]) or "body" for e in exc.errors()]
    return JSONResponse(
        {
            "success": False,
            "error": f"Invalid request: check {', '.join(missing)}",
            "code": "E_INVALID_REQUEST",
        },
        status_code=400,
    )


@app.get("/health")
async def health():
    return JSONResponse({"ok": True, "env": settings.ENV})


# ---- Routers ----
app.include_router(convert_router, tags=["convert"])
app.include_router(jobs_router, prefix="/v1", tags=["jobs"])


# ---- Startup ----
@app.on_event("startup")
async def on_startup():
    if (settings.JOB_STORE or "").lower() == "sql":
        from slideit.services.db import init_models
        await init_models()
    log.info("slideit started env=%s job_store=%s images=%s", settings.ENV, settings.JOB_STORE, settings.IMAGE_PROVIDER)
