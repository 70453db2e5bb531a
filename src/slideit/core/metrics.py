from prometheus_client import Counter, Histogram, make_asgi_app
from starlette.middleware.base import BaseHTTPMiddleware
import time

REQUEST_LATENCY = Histogram(
    "http_request_latency_seconds",
    "Latency of HTTP requests",
    ["path", "method", "status"],
    buckets=[0.005,0.01,0.025,0.05,0.1,0.25,0.5,1,2,5,15,60],
)
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["path", "method", "status"],
)

CONVERSIONS = Counter(
    "conversions_total",
    "Conversion jobs by source kind and terminal status",
    ["kind", "status"],
)
STAGE_LATENCY = Histogram(
    "conversion_stage_seconds",
    "Time spent in each pipeline stage",
    ["stage"],
    buckets=[0.05,0.1,0.5,1,2,5,10,30,60,120,300],
)
ILLUSTRATIONS = Counter(
    "illustrations_total",
    "Per-slide illustration outcomes",
    ["outcome"],  # ok | failed | skipped
)
GENERATED_SLIDES = Counter(
    "generated_slides_total",
    "Slide records returned by the content generator",
    ["kind"],
)

class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        resp = await call_next(request)
        latency = time.perf_counter() - start
        route = request.scope.get("route")
        path = getattr(route, "path", request.url.path)
        method = request.method
        status = str(resp.status_code)
        REQUEST_LATENCY.labels(path, method, status).observe(latency)
        REQUEST_COUNT.labels(path, method, status).inc()
        return resp

metrics_app = make_asgi_app()
