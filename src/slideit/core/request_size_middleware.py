from __future__ import annotations

from typing import Callable

import anyio
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from slideit.core.config import settings


class MaxBodySizeMiddleware(BaseHTTPMiddleware):
    """
    Reject request bodies larger than MAX_UPLOAD_MB (base64 documents arrive inline).
    Uses Content-Length when present; chunked bodies are cut off once over the cap.
    """
    async def dispatch(self, request: Request, call_next: Callable):
        cap = int(settings.MAX_UPLOAD_MB) * 1024 * 1024
        cl = request.headers.get("content-length")
        if cl and cl.isdigit() and int(cl) > cap:
            return JSONResponse(
                {"success": False, "error": "request body too large", "code": "E_INVALID_REQUEST"},
                status_code=413,
            )

        received = 0
        original_receive = request.receive

        async def limited_receive():
            nonlocal received
            message = await original_receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b"") or b"")
                if received > cap:
                    with anyio.move_on_after(0):
                        while message.get("more_body"):
                            message = await original_receive()
                    return {"type": "http.disconnect"}
            return message

        request._receive = limited_receive  # type: ignore[attr-defined]
        return await call_next(request)
