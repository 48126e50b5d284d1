"""
=============================================================================
MIDDLEWARE PACKAGE
=============================================================================

Cross-cutting behavior wrapped around every route handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ base.py            Middleware ABC, MiddlewarePipeline,              │
    │                    FunctionMiddleware / @function_middleware        │
    │ error_handling.py  exceptions → 500 {"error": ..., "message": ...}  │
    │ logging.py         access log lines with timing                     │
    │ cors.py            Access-Control-* headers, optional preflight     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .base import (
    Middleware,
    MiddlewarePipeline,
    NextHandler,
    FunctionMiddleware,
    function_middleware,
)
from .error_handling import ErrorHandlingMiddleware
from .logging import LoggingMiddleware
from .cors import CORSMiddleware

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "FunctionMiddleware",
    "function_middleware",

    # Built-in middleware
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "CORSMiddleware",
]
