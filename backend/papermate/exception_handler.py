from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from papermate.errors import PaperMateError

logger = logging.getLogger(__name__)


def setup_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(PaperMateError)
    async def papermate_exception_handler(request: Request, exc: PaperMateError):
        logger.info(
            "Request rejected",
            extra={"path": request.url.path, "error": type(exc).__name__, "status_code": exc.status_code},
        )
        return JSONResponse(content={"detail": exc.message}, status_code=exc.status_code)
