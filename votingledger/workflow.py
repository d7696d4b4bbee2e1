'''Workflow phases of an election.

The election moves through six ordered phases, one step at a time and only
forward. Which phase comes next is stated explicitly in
:data:`SUCCESSORS` rather than derived by arithmetic on the phase values.
'''

from __future__ import annotations

import enum
import functools
from typing import Dict, Optional

from votingledger.errors import InvalidPhaseTransition


@functools.total_ordering
class WorkflowStatus(enum.Enum):
    '''A phase of the election workflow.

    Members are ordered by their position in the workflow.
    '''
    REGISTERING_VOTERS = 0
    PROPOSALS_REGISTRATION_STARTED = 1
    PROPOSALS_REGISTRATION_ENDED = 2
    VOTING_SESSION_STARTED = 3
    VOTING_SESSION_ENDED = 4
    VOTES_TALLIED = 5

    def __lt__(self, other):
        if not isinstance(other, WorkflowStatus):
            return NotImplemented
        return self.value < other.value

    @property
    def successor(self) -> Optional[WorkflowStatus]:
        '''The phase that follows this one, None for the terminal phase.'''
        return SUCCESSORS[self]

    @property
    def is_terminal(self) -> bool:
        return SUCCESSORS[self] is None


INITIAL_STATUS = WorkflowStatus.REGISTERING_VOTERS

SUCCESSORS: Dict[WorkflowStatus, Optional[WorkflowStatus]] = {
    WorkflowStatus.REGISTERING_VOTERS:
        WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
    WorkflowStatus.PROPOSALS_REGISTRATION_STARTED:
        WorkflowStatus.PROPOSALS_REGISTRATION_ENDED,
    WorkflowStatus.PROPOSALS_REGISTRATION_ENDED:
        WorkflowStatus.VOTING_SESSION_STARTED,
    WorkflowStatus.VOTING_SESSION_STARTED:
        WorkflowStatus.VOTING_SESSION_ENDED,
    WorkflowStatus.VOTING_SESSION_ENDED:
        WorkflowStatus.VOTES_TALLIED,
    WorkflowStatus.VOTES_TALLIED: None,
}

PREDECESSORS: Dict[WorkflowStatus, WorkflowStatus] = {
    after: before for before, after in SUCCESSORS.items()
    if after is not None
}

# statement of the expected phase when a transition is attempted too early
# or too late, keyed by the target phase
TRANSITION_MESSAGES: Dict[WorkflowStatus, str] = {
    WorkflowStatus.PROPOSALS_REGISTRATION_STARTED:
        'Registering proposals cant be started now',
    WorkflowStatus.PROPOSALS_REGISTRATION_ENDED:
        'Registering proposals havent started yet',
    WorkflowStatus.VOTING_SESSION_STARTED:
        'Registering proposals phase is not finished',
    WorkflowStatus.VOTING_SESSION_ENDED:
        'Voting session havent started yet',
    WorkflowStatus.VOTES_TALLIED:
        'Current status is not voting session ended',
}


def predecessor_of(target: WorkflowStatus) -> WorkflowStatus:
    '''Return the phase a transition to target must start from.

    :param target: Phase to transition into.
    :raises InvalidPhaseTransition: If no transition leads to target
        (the initial phase).
    '''
    try:
        return PREDECESSORS[target]
    except KeyError:
        raise InvalidPhaseTransition(
            None, target, f'no transition leads to {target.name}'
        )


def check_transition(current: WorkflowStatus,
                     target: WorkflowStatus,
                     ) -> None:
    '''Check that the workflow can move from current to target right now.

    :raises InvalidPhaseTransition: If current is not the phase immediately
        preceding target.
    '''
    expected = predecessor_of(target)
    if current is not expected:
        raise InvalidPhaseTransition(
            current, expected, TRANSITION_MESSAGES[target]
        )
