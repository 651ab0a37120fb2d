"""
Normalized stream events.

The only vocabulary the response relay understands. Events carry no
provider-specific shape: a TextDelta is just text, optionally tagged
with the "provider/model" label of the model that produced it.
"""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, ConfigDict


class TextDelta(BaseModel):
    """An incremental piece of assistant text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text_delta"] = "text_delta"
    text: str
    source: str | None = None  # "provider/model", set by the gateway


class Done(BaseModel):
    """The stream finished normally."""

    model_config = ConfigDict(frozen=True)

    type: Literal["done"] = "done"


class StreamError(BaseModel):
    """The stream failed. Terminal, like Done."""

    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    message: str
    code: str = "upstream_error"


StreamEvent = Union[TextDelta, Done, StreamError]


def is_terminal(event: StreamEvent) -> bool:
    """True for events after which nothing may be emitted."""
    return isinstance(event, (Done, StreamError))
