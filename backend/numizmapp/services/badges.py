"""Badge labels for unread counters."""


def format_badge(count: int, *, cap: int) -> str | None:
    """Return the badge text for ``count``, or ``None`` when no badge is shown."""

    if count <= 0:
        return None
    if count > cap:
        return f"{cap}+"
    return str(count)
