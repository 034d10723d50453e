"""
FILE: src/api/main.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from src.api.observability import setup_observability
from src.api.persistence_profile import validate_persistence_profile_guardrails
from src.api.routers.proposals import router as proposal_workflow_router


@asynccontextmanager
async def _app_lifespan(_app: FastAPI):
    validate_persistence_profile_guardrails()
    yield


app = FastAPI(
    title="Proposal Approval Workflow API",
    version="0.1.0",
    description=(
        "Two-stage approval workflow for proposals.\n\n"
        "Proposals move from `draft` through manager review and client review; every "
        "transition is permission-checked, audited, and notified."
    ),
    openapi_tags=[
        {
            "name": "Proposal Approval Workflow",
            "description": "Proposal lifecycle, available actions, audit trail, and notifications.",
        },
        {
            "name": "Health",
            "description": "Service liveness probe.",
        },
    ],
    lifespan=_app_lifespan,
)

logger = logging.getLogger(__name__)

setup_observability(app)
app.include_router(proposal_workflow_router)


@app.get("/health", tags=["Health"], summary="Liveness Probe")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.exception_handler(Exception)
async def unhandled_exception_to_problem_details(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception while serving request", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "about:blank",
            "title": "Internal Server Error",
            "status": 500,
            "detail": "An unexpected error occurred.",
            "instance": str(request.url.path),
        },
    )
