"""
backend/app/services/events.py

Event emitter: pushes lesson events to a Redis queue for the notification
consumer (emails, dashboards).

Queue: events:p2p, one JSON object per event, RPUSH'd in emission order.
"""

import json
import time
import logging
from datetime import date, datetime

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

EVENTS_QUEUE = "events:p2p"


def _default(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Not serializable: {type(value).__name__}")


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit an event.

    Delivery is best-effort: a Redis failure is logged, never raised.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(EVENTS_QUEUE, json.dumps(event, default=_default))
        logger.info(f"Event emitted: {event_type} → {EVENTS_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
