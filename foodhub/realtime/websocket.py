"""WebSocket endpoint for the realtime comment channel.

High-level flow per connection:
    accept -> subscribe -> (receive frame -> decode JSON -> dispatch)* -> unsubscribe

Frames in both directions are JSON text: {"event": <name>, "data": <payload>}.

Poison frames (bad JSON, wrong shape, unknown event) are logged and skipped.
Closing the connection over one bad frame would also drop every broadcast
that client is waiting for.
"""

from __future__ import annotations

import json
import uuid

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from .channel import Subscriber

logger = structlog.get_logger()


async def comment_socket(websocket: WebSocket) -> None:
    """Serve one client on the comment namespace.

    The registry and comment service come from `app.state`, set up in the
    application lifespan.
    """
    state = websocket.app.state
    channel = state.channel
    service = state.comment_service
    namespace = service.namespace

    await websocket.accept()

    subscriber = Subscriber(websocket, client_id=uuid.uuid4().hex[:12])
    channel.subscribe(namespace, subscriber)
    log = logger.bind(client_id=subscriber.client_id)

    try:
        while True:
            raw = await websocket.receive_text()

            # --- Decode JSON frame -------------------------------------------
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError as e:
                log.warning("socket.bad_frame", error=str(e))
                continue

            if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
                log.warning("socket.bad_frame", error="expected {'event': str, 'data': ...}")
                continue

            # --- Dispatch ------------------------------------------------------
            await service.dispatch(subscriber, frame["event"], frame.get("data"))
    except WebSocketDisconnect as e:
        log.info("socket.disconnected", code=e.code)
    except Exception:
        log.exception("socket.handler_failed")
    finally:
        channel.unsubscribe(namespace, subscriber)
        # Still open only when a handler error ended the loop; 1011 = internal error.
        if (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED
        ):
            await websocket.close(code=1011)
