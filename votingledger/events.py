"""Notifications produced by successful election operations.

Each mutating operation returns the event describing its effect and records
it in the election, readable through an :class:`EventLog`. Failed operations
produce no event.
"""

from __future__ import annotations

import dataclasses
from typing import Hashable, Iterator, List, Type, Union

from votingledger.workflow import WorkflowStatus


@dataclasses.dataclass(frozen=True)
class VoterRegistered:
    identity: Hashable


@dataclasses.dataclass(frozen=True)
class ProposalRegistered:
    proposal_id: int


@dataclasses.dataclass(frozen=True)
class Voted:
    identity: Hashable
    proposal_id: int


@dataclasses.dataclass(frozen=True)
class PhaseChanged:
    """The workflow moved from previous to new."""
    previous: WorkflowStatus
    new: WorkflowStatus


Event = Union[VoterRegistered, ProposalRegistered, Voted, PhaseChanged]


class EventLog:
    """A read-only view of the events an election has produced.

    The view follows the underlying list, so it stays current as the
    election goes on; only the election itself appends to that list.
    """

    def __init__(self, events: List[Event]):
        self._events = events

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __getitem__(self, index: int) -> Event:
        return self._events[index]

    def of_type(self, event_type: Type) -> List[Event]:
        """Return the logged events of the given type, oldest first."""
        return [event for event in self._events
                if isinstance(event, event_type)]
