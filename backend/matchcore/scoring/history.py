"""Bounded snapshot history shared by the sport engines."""

from __future__ import annotations

from typing import Optional, Type, TypeVar

from pydantic import BaseModel

from ..exceptions import InvalidState

S = TypeVar("S", bound=BaseModel)
M = TypeVar("M", bound=BaseModel)


def create_snapshot(state: BaseModel, snapshot_cls: Type[S]) -> S:
    """Deep copy the snapshotted fields of ``state``."""

    fields = snapshot_cls.model_fields.keys()
    data = state.model_dump(include=set(fields))
    return snapshot_cls.model_validate(data)


def add_to_history(state: M, snapshot_cls: Type[S], limit: int) -> M:
    """Return ``state`` with its pre-event snapshot pushed, oldest dropped."""

    history = [*state.history, create_snapshot(state, snapshot_cls)]  # type: ignore[attr-defined]
    if len(history) > limit:
        history = history[-limit:]
    return state.model_copy(update={"history": history})


def restore_previous(state: M, has_progress: bool) -> Optional[M]:
    """Pop the latest snapshot back into the state.

    Returns ``None`` for an untouched match (nothing to undo). A match that
    has progressed but carries no history cannot be undone.
    """

    history = list(state.history)  # type: ignore[attr-defined]
    if not history:
        if not has_progress:
            return None
        raise InvalidState("No history available to undo")

    snapshot = history.pop()
    restored = {name: getattr(snapshot, name) for name in type(snapshot).model_fields}
    restored["history"] = history
    return state.model_copy(update=restored, deep=True)
