"""In-process publish/subscribe registry.

Each namespace maps to the set of currently connected subscribers. Publishing
walks a snapshot of that set and pushes to each subscriber on its own, so one
broken connection cannot stop the others from getting the event.

Delivery is fire-and-forget: a client that is not connected when an event is
published never sees it. Clients catch up with `requestInitialData`.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class _JsonSocket(Protocol):
    async def send_json(self, data: Any, mode: str = "text") -> None: ...


class Subscriber:
    """One connected client.

    Frames are JSON text: {"event": <name>, "data": <payload>}.
    """

    def __init__(self, websocket: _JsonSocket, client_id: str = "") -> None:
        self.websocket = websocket
        self.client_id = client_id

    async def emit(self, event: str, data: Any) -> None:
        await self.websocket.send_json({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"Subscriber({self.client_id!r})"


class ChannelRegistry:
    """namespace -> set of Subscriber."""

    def __init__(self) -> None:
        self._namespaces: dict[str, set[Subscriber]] = {}

    def subscribe(self, namespace: str, subscriber: Subscriber) -> None:
        self._namespaces.setdefault(namespace, set()).add(subscriber)
        logger.info(
            "channel.subscribed",
            namespace=namespace,
            client_id=subscriber.client_id,
            subscribers=len(self._namespaces[namespace]),
        )

    def unsubscribe(self, namespace: str, subscriber: Subscriber) -> None:
        members = self._namespaces.get(namespace)
        if not members or subscriber not in members:
            return
        members.discard(subscriber)
        if not members:
            del self._namespaces[namespace]
        logger.info(
            "channel.unsubscribed",
            namespace=namespace,
            client_id=subscriber.client_id,
        )

    def subscribers(self, namespace: str) -> frozenset[Subscriber]:
        return frozenset(self._namespaces.get(namespace, ()))

    async def publish(self, namespace: str, event: str, data: Any) -> int:
        """Send `event` to every subscriber of `namespace`.

        Returns:
            How many subscribers the event was delivered to.

        A subscriber whose send raises is dropped from the namespace; its
        WebSocket handler will clean up the rest when it notices.
        """
        delivered = 0
        for subscriber in self.subscribers(namespace):
            try:
                await subscriber.emit(event, data)
            except Exception as e:
                logger.warning(
                    "channel.send_failed",
                    namespace=namespace,
                    socket_event=event,
                    client_id=subscriber.client_id,
                    error=str(e),
                )
                self.unsubscribe(namespace, subscriber)
                continue
            delivered += 1

        logger.debug("channel.published", namespace=namespace, socket_event=event, delivered=delivered)
        return delivered
