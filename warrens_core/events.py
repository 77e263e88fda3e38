"""Change notification for presentation/storage collaborators.

The engine publishes one ChangeEvent per committed write. Transport
(websockets, polling, webhooks) belongs to the listener.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

RecordKind = Literal["challenge", "submission", "result"]
ChangeAction = Literal["created", "updated"]


@dataclass(frozen=True)
class ChangeEvent:
    record: RecordKind
    action: ChangeAction
    challenge_id: str
    participant_id: str | None = None


class ChangeListener(Protocol):
    def __call__(self, event: ChangeEvent) -> None:
        ...


class ChangeNotifier:
    """Fan-out of change events to registered listeners.

    A failing listener is logged with its traceback; the write it reports
    has already been committed and the remaining listeners still run.
    """

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def publish(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    f"Change listener failed for {event.record}/{event.action} "
                    f"challenge={event.challenge_id} participant={event.participant_id}"
                )


__all__ = ["ChangeEvent", "ChangeListener", "ChangeNotifier", "RecordKind", "ChangeAction"]
