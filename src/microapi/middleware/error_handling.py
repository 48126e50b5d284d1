"""
Error handling middleware.

Catches any exception raised further down the chain and answers
500 {"error": "Internal server error", "message": str(exc)}. Register it
first so it wraps every other middleware and the handler.
"""

import logging

from .base import Middleware, NextHandler
from ..http.models import Request, Response
from ..http.response import internal_error


logger = logging.getLogger(__name__)


class ErrorHandlingMiddleware(Middleware):
    """
    Converts unhandled exceptions into 500 responses.

    Args:
        expose_message: Include str(exc) under "message" in the body
    """

    def __init__(self, expose_message: bool = True):
        self.expose_message = expose_message

    def process(self, request: Request, next: NextHandler) -> Response:
        try:
            return next(request)
        except Exception as e:
            logger.exception(f"Unhandled error in {request.method.value} {request.path}")
            return internal_error(str(e) if self.expose_message else None)
