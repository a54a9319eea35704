"""FastAPI dependencies."""

from fastapi import HTTPException, Request

from numizmapp.services.results import ActionResult
from numizmapp.services.runtime import SyncRuntime


def get_runtime(request: Request) -> SyncRuntime:
    """Return the runtime built by the application lifespan."""

    return request.app.state.runtime


def raise_for_result(result: ActionResult) -> None:
    """Translate skipped/failed command results into HTTP errors."""

    if result.status == "skipped":
        raise HTTPException(status_code=409, detail=result.detail)
    if result.status == "failed":
        raise HTTPException(status_code=503, detail=result.detail)
