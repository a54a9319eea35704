"""Sign-in/sign-out routes driving the sync core lifecycle."""

from fastapi import APIRouter, Depends, HTTPException

from numizmapp.dependencies import get_runtime
from numizmapp.schemas.common import ApiResponse
from numizmapp.schemas.sync import SessionRead, SessionRequest
from numizmapp.services.runtime import SyncRuntime

router = APIRouter(prefix="/session")


@router.get("", response_model=ApiResponse[SessionRead])
async def get_session(runtime: SyncRuntime = Depends(get_runtime)) -> ApiResponse[SessionRead]:
    """Return the signed-in identity."""

    return ApiResponse(data=SessionRead(user_id=runtime.session.user_id))


@router.post("", response_model=ApiResponse[SessionRead])
async def sign_in(payload: SessionRequest, runtime: SyncRuntime = Depends(get_runtime)) -> ApiResponse[SessionRead]:
    """Start a session; the inbox tracker loads and subscribes."""

    try:
        await runtime.session.sign_in(payload.user_id)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ApiResponse(data=SessionRead(user_id=runtime.session.user_id))


@router.delete("", response_model=ApiResponse[SessionRead])
async def sign_out(runtime: SyncRuntime = Depends(get_runtime)) -> ApiResponse[SessionRead]:
    """End the session and tear down every subscription."""

    await runtime.session.sign_out()
    return ApiResponse(data=SessionRead(user_id=None))
