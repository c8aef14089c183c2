"""Scoring events accepted by the sport engines."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, TypeAdapter, ValidationError

from ..exceptions import InvalidInput

# Booleans and numeric strings are rejected rather than read as a side.
EventSide = Annotated[StrictInt, Field(ge=1, le=2)]


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class ScorePoint(_Event):
    type: Literal["point"] = "point"
    winner: EventSide


class Ace(_Event):
    """Point to the current server."""

    type: Literal["ace"] = "ace"


class Fault(_Event):
    """A first fault only flags the point; a second one is a double fault."""

    type: Literal["fault"] = "fault"


class DoubleFault(_Event):
    """Point to the receiver."""

    type: Literal["double_fault"] = "double_fault"


class SetServer(_Event):
    type: Literal["set_server"] = "set_server"
    participant: EventSide


class AdjustScore(_Event):
    """Manual volleyball correction of the current set score."""

    type: Literal["adjust_score"] = "adjust_score"
    participant: EventSide
    adjustment: StrictInt


ScoreEvent = Annotated[
    Union[ScorePoint, Ace, Fault, DoubleFault, SetServer, AdjustScore],
    Field(discriminator="type"),
]

_adapter: TypeAdapter[Any] = TypeAdapter(ScoreEvent)


def parse_event(payload: Any) -> ScoreEvent:
    """Validate a raw payload (e.g. ``{"type": "point", "winner": 1}``)."""

    if isinstance(payload, _Event):
        return payload  # type: ignore[return-value]
    try:
        return _adapter.validate_python(payload)
    except ValidationError as exc:
        raise InvalidInput(f"invalid scoring event: {exc.errors()[0]['msg']}") from exc
