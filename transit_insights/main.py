from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from transit_insights.adapters.api.controllers.feeds import router as feeds_router
from transit_insights.adapters.api.controllers.history import router as history_router
from transit_insights.domain.exceptions import InsightsError

app = FastAPI(title="Transit Insights")
app.include_router(feeds_router)
app.include_router(history_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Surface every failure as a JSON 500 carrying a readable message.

    Feed, insights and history errors always expose their message; anything
    else only when REVEAL_ERRORS is set.
    """

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    reveal = (os.getenv("REVEAL_ERRORS") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    if reveal or isinstance(exc, (InsightsError, RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
