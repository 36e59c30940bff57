import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)

UPDATES_GROUP = "updates"


def broadcast_refresh(keys: list[str], **extra) -> None:
    """Tell websocket clients which views to reload.

    Best effort: a channel layer failure is logged, never raised to the
    request that already committed its change.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    now = timezone.now()
    event = {"type": "broadcast.refresh", "ts": now.isoformat(), "keys": keys[:50], **extra}
    try:
        async_to_sync(channel_layer.group_send)(UPDATES_GROUP, event)
    except Exception:
        logger.exception(f"Could not broadcast refresh for {keys}")
