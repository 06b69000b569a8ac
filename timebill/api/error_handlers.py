"""Error Handlers - last-resort exception handling for the Timebill API.

Invariants:
    - Routes answer with command envelopes themselves; only unexpected exceptions land here
    - Unhandled exception -> 500 {success: false, error} with a generic message
    - Internal details go to the log, never into the response

Design Decisions:
    - Kept out of main.py so the app module stays a thin wiring file
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from timebill.bridge.envelope import failure
from timebill.services.command_host import UNEXPECTED_ERROR

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register global error handlers on the FastAPI app."""

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=failure(UNEXPECTED_ERROR),
        )
