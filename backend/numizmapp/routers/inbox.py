"""Unread counter and notification routes."""

from fastapi import APIRouter, Depends, Path

from numizmapp.dependencies import get_runtime, raise_for_result
from numizmapp.schemas.common import ApiResponse
from numizmapp.schemas.sync import ActionOutcome, InboxSnapshot
from numizmapp.services.badges import format_badge
from numizmapp.services.runtime import SyncRuntime

router = APIRouter(prefix="/inbox")


def _snapshot(runtime: SyncRuntime) -> InboxSnapshot:
    inbox = runtime.inbox
    settings = runtime.settings
    return InboxSnapshot(
        unread_counts_by_peer=inbox.unread_counts_by_peer,
        total_unread=inbox.total_unread,
        total_unread_badge=format_badge(inbox.total_unread, cap=settings.unread_badge_cap),
        compact_unread_badge=format_badge(inbox.total_unread, cap=settings.compact_badge_cap),
        notifications=inbox.notifications,
        unread_notification_total=inbox.unread_notification_total,
        notification_badge=format_badge(inbox.unread_notification_total, cap=settings.unread_badge_cap),
    )


@router.get("", response_model=ApiResponse[InboxSnapshot])
async def get_inbox(runtime: SyncRuntime = Depends(get_runtime)) -> ApiResponse[InboxSnapshot]:
    """Return unread counts, badges and the notification log."""

    return ApiResponse(data=_snapshot(runtime))


@router.post("/peers/{peer_id}/read", response_model=ApiResponse[ActionOutcome])
async def mark_peer_read(
    peer_id: str = Path(..., min_length=1),
    runtime: SyncRuntime = Depends(get_runtime),
) -> ApiResponse[ActionOutcome]:
    """Mark every message from one peer as read."""

    result = await runtime.inbox.mark_read(peer_id)
    raise_for_result(result)
    return ApiResponse(data=ActionOutcome(status=result.status, detail=f"{result.data} messages marked read"))


@router.post("/notifications/acknowledge", response_model=ApiResponse[InboxSnapshot])
async def acknowledge_notifications(runtime: SyncRuntime = Depends(get_runtime)) -> ApiResponse[InboxSnapshot]:
    """Opening the notification panel clears the notification badge."""

    runtime.inbox.acknowledge_notifications()
    return ApiResponse(data=_snapshot(runtime))
