"""Pydantic models for foodhub.

Two groups live here:
- the persisted document shape (Restaurant -> Comment -> Reply)
- the payloads clients send over the realtime channel

Field names are camelCase because they are the wire format the browser client
already speaks. Validating at the socket boundary means the service never sees
a KeyError on a half-formed event.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, Field

# BSON stores integers as signed 64-bit; anything wider cannot be queried or saved.
Int64 = Annotated[int, Field(ge=-(2**63), le=2**63 - 1)]


class Reply(BaseModel):
    """A reply under a comment. Identified only by its position."""

    name: str
    message: str


class Comment(BaseModel):
    """A top-level comment on a restaurant.

    `replies` is optional on the wire; a new comment starts with none.
    """

    name: str
    message: str
    replies: list[Reply] = Field(default_factory=list)


class Restaurant(BaseModel):
    """One document per upstream restaurant.

    Notes:
        - `restaurantId` is the upstream id, not a Mongo key. Nothing enforces
          uniqueness (see DESIGN.md).
        - Mongo's `_id` is ignored when loading, so it never leaks to clients.
    """

    restaurantId: Int64
    comments: list[Comment] = Field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()


class AddCommentPayload(BaseModel):
    """Body of the `addComment` event."""

    restaurantId: Int64
    newComment: Comment


class AddReplyPayload(BaseModel):
    """Body of the `addReply` event."""

    restaurantId: Int64
    commentIndex: Int64
    newReply: Reply


class InitialDataRequest(BaseModel):
    """Body of the `requestInitialData` event."""

    restaurantId: Int64
