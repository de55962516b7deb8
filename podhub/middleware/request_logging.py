from fastapi import Request
import logging
import time
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("app")

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each REST request with its status and processing time"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        method = request.method
        path = request.url.path

        # CORS preflights are noise at INFO
        log = logger.debug if method == "OPTIONS" else logger.info
        log(f"Request: {method} {path} {request.url.query}")

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled error on {method} {path}: {e}")
            raise

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        log(f"Response: {method} {path} {response.status_code} in {process_time:.4f}s")

        return response
