import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from elosya.core.logging import request_id_ctx_var, latency_bucket_ms

# Routes that mutate wallets or counters; logged at INFO with the caller id
LEDGER_PATH_MARKERS = ("/like", "/share", "/coins/", "/view", "/comment")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request_id to each request and log completion with the caller identity."""

    def __init__(self, app, header_name: str = "x-request-id", user_header: str = "x-user-id"):
        super().__init__(app)
        self.header_name = header_name
        self.user_header = user_header

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)

        start = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            response.headers[self.header_name] = rid

            path = request.url.path
            logging.getLogger("elosya").info(
                "request.complete",
                extra={
                    "request_id": rid,
                    "path": path,
                    "method": request.method,
                    "status": getattr(response, "status_code", None),
                    "latency_bucket": latency_bucket_ms(duration_ms),
                    "user_id": request.headers.get(self.user_header),
                    "ledger_write": request.method == "POST" and any(m in path for m in LEDGER_PATH_MARKERS),
                },
            )
            return response
        finally:
            request_id_ctx_var.reset(token)
