"""Admin endpoints for queue inspection and maintenance."""

from __future__ import annotations

from fastapi import APIRouter, Request

from retryqueue.engine.maintenance import QueueMaintenance
from retryqueue.models.record import ResetRequest, StatusCount

router = APIRouter(tags=["admin"])


def _maintenance(request: Request) -> QueueMaintenance:
    return request.app.state.maintenance


@router.get("/statuses")
def get_statuses(request: Request) -> list[StatusCount]:
    """Return the number of records per status."""
    return _maintenance(request).status_counts()


@router.post("/records/reset")
def reset_records(body: ResetRequest, request: Request) -> dict[str, int]:
    """Put the given records back to ``received``."""
    return {"matched": _maintenance(request).reset_records(body.ids)}


@router.post("/cleanup")
def cleanup(request: Request) -> dict[str, int]:
    """Delete processed records older than the configured max age."""
    return {"deleted": _maintenance(request).cleanup()}
