"""Comment service: the only part of foodhub with decision logic.

High-level flow for every inbound event:
    validate payload -> read restaurant -> modify in memory -> save -> broadcast

Who hears about what:
- addComment: every subscriber gets `newComment`. Failures are only logged.
- addReply: every subscriber gets `newReply`; failures go to the sender only,
  as `replyError`.
- requestInitialData: the sender alone gets `initialData`, or nothing.

pymongo is blocking, so each store call runs in Starlette's threadpool. While
one handler waits there, the event loop keeps serving other connections.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import structlog
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

from .config import SOCKET_NAMESPACE
from .models import AddCommentPayload, AddReplyPayload, InitialDataRequest, Restaurant
from .mongo import RestaurantStore
from .realtime.channel import ChannelRegistry, Subscriber

logger = structlog.get_logger()

NOT_FOUND_MESSAGE = "Restaurant or comment not found"
INTERNAL_ERROR_MESSAGE = "Internal Server Error"


class CommentService:
    """Handle comment events for one broadcast namespace."""

    def __init__(
        self,
        store: RestaurantStore,
        channel: ChannelRegistry,
        namespace: str = SOCKET_NAMESPACE,
    ) -> None:
        self.store = store
        self.channel = channel
        self.namespace = namespace
        self._handlers: dict[str, Callable[[Subscriber, Any], Awaitable[None]]] = {
            "addComment": self.add_comment,
            "addReply": self.add_reply,
            "requestInitialData": self.request_initial_data,
        }

    async def dispatch(self, sender: Subscriber, event: str, data: Any) -> bool:
        """Route one inbound event. Returns False for unknown event names."""
        handler = self._handlers.get(event)
        if handler is None:
            logger.warning("comments.unknown_event", socket_event=event, client_id=sender.client_id)
            return False
        await handler(sender, data)
        return True

    async def add_comment(self, sender: Subscriber, data: Any) -> None:
        """Append a comment, creating the restaurant on first use, then broadcast `newComment`.

        Store errors are logged only; neither the sender nor anyone else hears
        about them.
        """
        try:
            payload = AddCommentPayload.model_validate(data)
        except ValidationError as e:
            logger.warning("comments.bad_payload", socket_event="addComment", error=str(e))
            return

        try:
            found = await run_in_threadpool(self.store.find, payload.restaurantId)
            if found is None:
                restaurant = Restaurant(
                    restaurantId=payload.restaurantId,
                    comments=[payload.newComment],
                )
                await run_in_threadpool(self.store.insert, restaurant)
            else:
                key, restaurant = found
                restaurant.comments.append(payload.newComment)
                await run_in_threadpool(self.store.save, key, restaurant)
        except PyMongoError:
            # The sender gets no feedback here; only addReply reports failures.
            logger.exception("comments.add_comment_failed", restaurant_id=payload.restaurantId)
            return

        logger.info(
            "comments.comment_added",
            restaurant_id=restaurant.restaurantId,
            comments=len(restaurant.comments),
            client_id=sender.client_id,
        )
        await self.channel.publish(self.namespace, "newComment", restaurant.model_dump())

    async def add_reply(self, sender: Subscriber, data: Any) -> None:
        """Append a reply to comment `commentIndex`, then broadcast `newReply`.

        Failures go to the sender alone as `replyError`:
            - unknown restaurant or index out of range -> NOT_FOUND_MESSAGE
            - store error on lookup or save -> INTERNAL_ERROR_MESSAGE
        """
        try:
            payload = AddReplyPayload.model_validate(data)
        except ValidationError as e:
            logger.warning("comments.bad_payload", socket_event="addReply", error=str(e))
            await sender.emit("replyError", NOT_FOUND_MESSAGE)
            return

        try:
            found = await run_in_threadpool(self.store.find, payload.restaurantId)
            if found is None or not 0 <= payload.commentIndex < len(found[1].comments):
                logger.info(
                    "comments.reply_target_missing",
                    restaurant_id=payload.restaurantId,
                    comment_index=payload.commentIndex,
                )
                await sender.emit("replyError", NOT_FOUND_MESSAGE)
                return

            key, restaurant = found
            restaurant.comments[payload.commentIndex].replies.append(payload.newReply)
            await run_in_threadpool(self.store.save, key, restaurant)
        except PyMongoError:
            logger.exception(
                "comments.add_reply_failed",
                restaurant_id=payload.restaurantId,
                comment_index=payload.commentIndex,
            )
            await sender.emit("replyError", INTERNAL_ERROR_MESSAGE)
            return

        logger.info(
            "comments.reply_added",
            restaurant_id=restaurant.restaurantId,
            comment_index=payload.commentIndex,
            client_id=sender.client_id,
        )
        await self.channel.publish(self.namespace, "newReply", restaurant.model_dump())

    async def request_initial_data(self, sender: Subscriber, data: Any) -> None:
        """Send the current record to the sender only, if the restaurant exists."""
        try:
            payload = InitialDataRequest.model_validate(data)
        except ValidationError as e:
            logger.warning("comments.bad_payload", socket_event="requestInitialData", error=str(e))
            return

        try:
            found = await run_in_threadpool(self.store.find, payload.restaurantId)
        except PyMongoError:
            logger.exception("comments.initial_data_failed", restaurant_id=payload.restaurantId)
            return

        # Unknown restaurant: nothing has been said about it yet, so stay quiet.
        if found is None:
            return

        _, restaurant = found
        await sender.emit("initialData", restaurant.model_dump())
