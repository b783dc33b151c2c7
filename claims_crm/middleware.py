import time, uuid, structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

log = structlog.get_logger()

# No access log lines for health checks
SKIP_PATHS = {"/healthz"}

class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()

        # attach request id
        request.state.req_id = req_id
        response: Response = None
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000

            if request.url.path not in SKIP_PATHS:
                log.info("http.access",
                         req_id=req_id,
                         method=request.method,
                         path=request.url.path,
                         status=getattr(response, "status_code", None),
                         elapsed_ms=round(elapsed_ms, 2))
