"""Request deadline for retrieval endpoints"""
import asyncio
import logging
from fastapi import Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..schemas.response import ErrorResponse

logger = logging.getLogger(__name__)


class CustomTimeoutMiddleware(BaseHTTPMiddleware):
    """
    Bounds request handling time.

    Gemini and Supabase calls carry no deadline of their own. A request that
    outlives timeout_seconds is answered with a 504 in the same error shape
    the routes use. In-flight vector searches keep running for other waiters.
    """

    def __init__(self, app, timeout_seconds: float = 60):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"{request.method} {request.url.path} gave up after {self.timeout_seconds}s")
            body = ErrorResponse(
                error="RequestTimeout",
                message="Retrieval did not finish within the request deadline",
                details={"timeout_seconds": self.timeout_seconds, "path": request.url.path}
            )
            return JSONResponse(status_code=504, content=body.model_dump())
