"""Player registry: the fixed roster of competing participants."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from .errors import ValidationError


@dataclass(frozen=True)
class Participant:
    id: str
    name: str
    color: str


DEFAULT_PARTICIPANTS: tuple[Participant, ...] = (
    Participant(id="triggz", name="Triggz", color="#b91c1c"),
    Participant(id="tyrillis", name="Tyrillis", color="#3b82f6"),
    Participant(id="ivory", name="Ivory", color="#f0f0f0"),
    Participant(id="scumby", name="Scumby", color="#22c55e"),
    Participant(id="adz", name="Adz", color="#fbbf24"),
)


class Roster:
    """Immutable, ordered lookup of participants.

    Registration order is significant: it is the final standings tie-break.
    """

    def __init__(self, participants: Iterable[Participant]) -> None:
        ordered = tuple(participants)
        if not ordered:
            raise ValidationError("roster must contain at least one participant")
        by_id: dict[str, Participant] = {}
        for participant in ordered:
            if not participant.id or not participant.id.strip():
                raise ValidationError("participant id cannot be blank")
            if participant.id in by_id:
                raise ValidationError(
                    f"duplicate participant id: {participant.id}",
                    participant_id=participant.id,
                )
            by_id[participant.id] = participant
        self._participants = ordered
        self._by_id = by_id

    @classmethod
    def default(cls) -> "Roster":
        return cls(DEFAULT_PARTICIPANTS)

    @property
    def size(self) -> int:
        return len(self._participants)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(p.id for p in self._participants)

    @property
    def participants(self) -> tuple[Participant, ...]:
        return self._participants

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._by_id

    def __iter__(self) -> Iterator[Participant]:
        return iter(self._participants)

    def __len__(self) -> int:
        return len(self._participants)

    def get(self, participant_id: str) -> Participant | None:
        return self._by_id.get(participant_id)

    def require(self, participant_id: str, *, challenge_id: str | None = None) -> Participant:
        participant = self._by_id.get(participant_id)
        if participant is None:
            raise ValidationError(
                f"unknown participant: {participant_id}",
                challenge_id=challenge_id,
                participant_id=participant_id,
            )
        return participant


__all__ = ["Participant", "Roster", "DEFAULT_PARTICIPANTS"]
