"""
=============================================================================
LOGGING MIDDLEWARE
=============================================================================

Access logging: one line when a request enters the chain, one line with
the status and elapsed time when its response comes back.

    [INFO] microapi.access: [a1b2c3d4] GET /hello
    [INFO] microapi.access: [a1b2c3d4] GET /hello 200 0.42ms

Register it near the front of the chain so its timing covers everything
registered after it. If it sits inside ErrorHandlingMiddleware, failed
requests are logged by it as failures before being converted to 500.

=============================================================================
OUTPUT FORMATS
=============================================================================

    text:  [a1b2c3d4] GET /hello 200 0.42ms
    json:  {"request_id": "a1b2c3d4", "method": "GET", "path": "/hello",
            "query": {"name": "Ann"}, "status_code": 200, "duration_ms": 0.42}

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import json
import logging
import time
import uuid

from .base import Middleware, NextHandler
from ..http.models import Request, Response


# Namespaced so access logs can be routed separately:
#   logging.getLogger("microapi.access").addHandler(file_handler)
logger = logging.getLogger("microapi.access")


@dataclass
class RequestLog:
    """One access-log entry."""

    request_id: str
    method: str
    path: str
    status_code: int
    duration_ms: float
    query: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "query": self.query,
            "status_code": self.status_code,
            "duration_ms": round(self.duration_ms, 2),
        }

    def to_text(self) -> str:
        return (
            f"[{self.request_id}] {self.method} {self.path} "
            f"{self.status_code} {self.duration_ms:.2f}ms"
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Usage:
        app.use(LoggingMiddleware())
        app.use(LoggingMiddleware(log_format="json", skip_paths=["/health"]))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = False,
        log_level: int = logging.INFO,
        skip_paths: Optional[List[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json"
            include_request_id: Add an X-Request-ID header to responses
            log_level: Level the access lines are logged at
            skip_paths: Paths that are not logged (health checks, say)
        """
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def process(self, request: Request, next: NextHandler) -> Response:
        request_id = uuid.uuid4().hex[:8]
        method = request.method.value
        skip = request.path in self.skip_paths

        if not skip:
            logger.log(self.log_level, f"[{request_id}] {method} {request.path}")

        start_time = time.perf_counter()
        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{request_id}] {method} {request.path} failed: "
                f"{type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise
        duration_ms = (time.perf_counter() - start_time) * 1000

        if not skip:
            entry = RequestLog(
                request_id=request_id,
                method=method,
                path=request.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                query=dict(request.query),
            )
            if self.log_format == "json":
                logger.log(self.log_level, json.dumps(entry.to_dict()))
            else:
                logger.log(self.log_level, entry.to_text())

        if self.include_request_id:
            response = response.with_headers({"X-Request-ID": request_id})
        return response
