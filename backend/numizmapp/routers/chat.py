"""Open conversation routes."""

from fastapi import APIRouter, Depends, Query

from numizmapp.dependencies import get_runtime, raise_for_result
from numizmapp.schemas.common import ApiResponse
from numizmapp.schemas.message import RenderedMessage, SendAttachmentRequest, SendTextRequest
from numizmapp.schemas.sync import ActionOutcome, ConversationSnapshot, SelectPeerRequest
from numizmapp.services.runtime import SyncRuntime

router = APIRouter(prefix="/chat")


def _snapshot(runtime: SyncRuntime) -> ConversationSnapshot:
    conversation = runtime.conversation
    return ConversationSnapshot(
        peer_id=conversation.peer_id,
        status=conversation.status.value,
        error=conversation.error,
        draft=conversation.draft,
        messages=conversation.rendered_messages(),
    )


@router.get("", response_model=ApiResponse[ConversationSnapshot])
async def get_conversation(runtime: SyncRuntime = Depends(get_runtime)) -> ApiResponse[ConversationSnapshot]:
    """Return the open conversation."""

    return ApiResponse(data=_snapshot(runtime))


@router.put("/peer", response_model=ApiResponse[ConversationSnapshot])
async def select_peer(
    payload: SelectPeerRequest,
    runtime: SyncRuntime = Depends(get_runtime),
) -> ApiResponse[ConversationSnapshot]:
    """Open the conversation with one peer."""

    raise_for_result(await runtime.conversation.select_peer(payload.peer_id))
    return ApiResponse(data=_snapshot(runtime))


@router.post("/messages", response_model=ApiResponse[RenderedMessage], status_code=201)
async def send_text(
    payload: SendTextRequest,
    runtime: SyncRuntime = Depends(get_runtime),
) -> ApiResponse[RenderedMessage]:
    """Send a plain message to the open peer."""

    result = await runtime.conversation.send_text(payload.content)
    raise_for_result(result)
    return ApiResponse(data=runtime.conversation.render(result.data))


@router.post("/attachments", response_model=ApiResponse[RenderedMessage], status_code=201)
async def send_attachment(
    payload: SendAttachmentRequest,
    runtime: SyncRuntime = Depends(get_runtime),
) -> ApiResponse[RenderedMessage]:
    """Share a collectible with the open peer."""

    result = await runtime.conversation.send_attachment(payload.item, payload.caption)
    raise_for_result(result)
    return ApiResponse(data=runtime.conversation.render(result.data))


@router.delete("", response_model=ApiResponse[ActionOutcome])
async def delete_conversation(
    confirm: bool = Query(default=False),
    runtime: SyncRuntime = Depends(get_runtime),
) -> ApiResponse[ActionOutcome]:
    """Delete the whole conversation; requires ``confirm=true``."""

    result = await runtime.conversation.delete_conversation(confirmed=confirm)
    raise_for_result(result)
    return ApiResponse(data=ActionOutcome(status=result.status, detail="conversation deleted"))
