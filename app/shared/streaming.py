"""Server-sent events over store subscriptions"""

import json
import logging
from typing import AsyncIterator

from fastapi.encoders import jsonable_encoder

from ..errors import classify
from ..store import Subscription

logger = logging.getLogger(__name__)


async def event_stream(subscription: Subscription) -> AsyncIterator[str]:
    """
    Relay each snapshot as one ``data:`` event. A failed subscription ends the
    stream with an ``error`` event. The subscription is closed when the client
    disconnects.
    """
    try:
        async for snapshot in subscription:
            yield f"data: {json.dumps(jsonable_encoder(snapshot))}\n\n"
    except Exception as e:
        classified = classify(e)
        logger.error(f"❌ Subscription failed: {classified.code}")
        payload = {"kind": classified.kind.value, "code": classified.code, "detail": classified.user_message}
        yield f"event: error\ndata: {json.dumps(payload)}\n\n"
    finally:
        subscription.unsubscribe()
