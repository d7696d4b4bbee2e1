'''The election ledger: workflow, voters, proposals and the tally.

An :class:`Election` is a single stateful object that carries one election
from voter registration to the tallied result. Every operation takes the
identity of its caller explicitly; the administrator role is confirmed by
the :class:`votingledger.auth.Authorizer` the election was created with,
the voter role by the election's own registry.

The workflow runs through these phases, each step triggered by the
administrator:

1.  ``REGISTERING_VOTERS`` - the administrator registers voters.
2.  ``PROPOSALS_REGISTRATION_STARTED`` - the genesis proposal (id 0) is
    created; voters submit proposals.
3.  ``PROPOSALS_REGISTRATION_ENDED``
4.  ``VOTING_SESSION_STARTED`` - each voter votes once.
5.  ``VOTING_SESSION_ENDED``
6.  ``VOTES_TALLIED`` - the winning proposal is known.

All preconditions of an operation are checked before anything is changed,
so an operation that raises has no effect. Successful mutating operations
return the event they produced, which is also appended to
:attr:`Election.events`.

Example::

    election = Election.with_owner('admin')
    election.register_voter('admin', 'alice')
    election.start_proposals_registration('admin')
    election.submit_proposal('alice', 'Build a bridge')
    ...
'''

from __future__ import annotations

import functools
import logging
from typing import Any, Dict, Hashable, List, Optional

from votingledger import tally
from votingledger.auth import Authorizer, OwnerAuthorizer
from votingledger.errors import ElectionError, InvalidPhaseTransition, \
    PhaseNotOpen
from votingledger.events import Event, EventLog, PhaseChanged, \
    ProposalRegistered, Voted, VoterRegistered
from votingledger.persist import scoped_class_name, serialize_value, \
    deserialize_value
from votingledger.proposal import GENESIS_DESCRIPTION, GENESIS_ID, \
    Proposal, ProposalRegistry, check_description
from votingledger.voter import Voter, VoterRegistry
from votingledger.workflow import INITIAL_STATUS, TRANSITION_MESSAGES, \
    WorkflowStatus, check_transition

logger = logging.getLogger(__name__)


def _rejections_logged(method):
    @functools.wraps(method)
    def wrapper(self, caller, *args, **kwargs):
        try:
            return method(self, caller, *args, **kwargs)
        except ElectionError as err:
            logger.debug('%s by %r rejected: %s', method.__name__, caller, err)
            raise
    return wrapper


def check_consistency(status: WorkflowStatus,
                      voters: VoterRegistry,
                      proposals: ProposalRegistry,
                      winning_proposal_id: Any,
                      ) -> None:
    '''Check that restored state could have been reached by the operations.

    :raises ValueError: If it could not.
    '''
    if status is WorkflowStatus.REGISTERING_VOTERS:
        if len(proposals):
            raise ValueError('proposals exist before proposal registration')
    elif not len(proposals):
        raise ValueError(f'genesis proposal missing in {status.name}')
    for proposal_id, proposal in enumerate(proposals):
        count = proposal.vote_count
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise ValueError(
                f'invalid vote count of proposal {proposal_id}: {count!r}'
            )
    counts = [0] * len(proposals)
    for voter in voters:
        if not voter.has_voted:
            if voter.voted_proposal_id is not None:
                raise ValueError(
                    f'voter {voter.identity!r} has a choice but did not vote'
                )
            continue
        if status < WorkflowStatus.VOTING_SESSION_STARTED:
            raise ValueError(
                f'voter {voter.identity!r} voted before the voting session'
            )
        if voter.voted_proposal_id not in proposals:
            raise ValueError(
                f'voter {voter.identity!r} voted for unknown proposal'
                f' {voter.voted_proposal_id!r}'
            )
        counts[voter.voted_proposal_id] += 1
    if counts != proposals.vote_counts():
        raise ValueError(
            f'vote counts {proposals.vote_counts()} do not match'
            f' the votes cast {counts}'
        )
    if status is WorkflowStatus.VOTES_TALLIED:
        expected_id, _ = tally.leader(tally.count_votes(proposals))
    else:
        expected_id = GENESIS_ID
    if winning_proposal_id != expected_id \
            or isinstance(winning_proposal_id, bool):
        raise ValueError(
            f'invalid winning proposal id in {status.name}:'
            f' {winning_proposal_id!r}, must be {expected_id}'
        )


class Election:
    '''A single election, from voter registration to the tallied result.

    :param authorizer: Decides which caller is the administrator.
    :param genesis_description: Description of the sentinel proposal created
        when proposal registration starts.
    '''

    # named entry point for each transition, keyed by the phase it leads to
    TRANSITION_ENTRY_POINTS: Dict[WorkflowStatus, str] = {
        WorkflowStatus.PROPOSALS_REGISTRATION_STARTED:
            'start_proposals_registration',
        WorkflowStatus.PROPOSALS_REGISTRATION_ENDED:
            'end_proposals_registration',
        WorkflowStatus.VOTING_SESSION_STARTED: 'start_voting_session',
        WorkflowStatus.VOTING_SESSION_ENDED: 'end_voting_session',
        WorkflowStatus.VOTES_TALLIED: 'tally_votes',
    }

    def __init__(self,
                 authorizer: Authorizer,
                 genesis_description: str = GENESIS_DESCRIPTION,
                 ):
        check_description(genesis_description)
        self.authorizer = authorizer
        self.genesis_description = genesis_description
        self._status = INITIAL_STATUS
        self._voters = VoterRegistry()
        self._proposals = ProposalRegistry()
        self._winning_proposal_id = GENESIS_ID
        self._events: List[Event] = []

    @classmethod
    def with_owner(cls, owner: Hashable, **kwargs) -> Election:
        '''Create an election administered by a single owner.'''
        return cls(OwnerAuthorizer(owner), **kwargs)

    @property
    def workflow_status(self) -> WorkflowStatus:
        return self._status

    def current_phase(self) -> WorkflowStatus:
        '''Return the current workflow phase.'''
        return self._status

    @property
    def winning_proposal_id(self) -> int:
        '''Id of the winning proposal.

        Only meaningful once the phase is ``VOTES_TALLIED``; before that,
        this is the genesis id 0, which is not a result.
        '''
        return self._winning_proposal_id

    @property
    def owner(self) -> Optional[Hashable]:
        '''The administrator identity, if the authorizer has a single one.'''
        return getattr(self.authorizer, 'owner', None)

    @property
    def n_voters(self) -> int:
        return len(self._voters)

    @property
    def n_proposals(self) -> int:
        return len(self._proposals)

    @property
    def events(self) -> EventLog:
        return EventLog(self._events)

    # voter registry

    @_rejections_logged
    def register_voter(self,
                       caller: Hashable,
                       identity: Hashable,
                       ) -> VoterRegistered:
        '''Register an eligible voter.

        :param caller: Must be the administrator.
        :param identity: The voter to register.
        :raises Unauthorized: If the caller is not the administrator.
        :raises PhaseNotOpen: Outside the voter registration phase.
        :raises DuplicateVoter: If the identity is already registered.
        '''
        self.authorizer.check(caller)
        self._require_phase(
            WorkflowStatus.REGISTERING_VOTERS,
            'Voters registration is not open yet'
        )
        self._voters.add(identity)
        return self._emit(VoterRegistered(identity))

    @_rejections_logged
    def get_voter(self, caller: Hashable, identity: Hashable) -> Voter:
        '''Return a copy of a voter's record.

        :param caller: Must be a registered voter.
        :raises Unauthorized: If the caller is not a registered voter.
        :raises NotFound: If the identity is not registered.
        '''
        self._voters.check_voter(caller)
        return self._voters.get(identity)

    # proposal registry

    @_rejections_logged
    def submit_proposal(self,
                        caller: Hashable,
                        description: str,
                        ) -> ProposalRegistered:
        '''Submit a proposal; its id is in the returned event.

        :param caller: Must be a registered voter.
        :param description: Text of the proposal, must not be blank.
        :raises Unauthorized: If the caller is not a registered voter.
        :raises PhaseNotOpen: Outside the proposal registration phase.
        :raises EmptyProposal: If the description is blank.
        '''
        self._voters.check_voter(caller)
        self._require_phase(
            WorkflowStatus.PROPOSALS_REGISTRATION_STARTED,
            'Proposals are not allowed yet'
        )
        proposal_id = self._proposals.add(description)
        return self._emit(ProposalRegistered(proposal_id))

    @_rejections_logged
    def get_proposal(self, caller: Hashable, proposal_id: int) -> Proposal:
        '''Return a copy of a proposal.

        :param caller: Must be a registered voter.
        :raises Unauthorized: If the caller is not a registered voter.
        :raises NotFound: If there is no proposal with that id.
        '''
        self._voters.check_voter(caller)
        return self._proposals.get(proposal_id)

    # voting

    @_rejections_logged
    def cast_vote(self, caller: Hashable, proposal_id: int) -> Voted:
        '''Cast the caller's only vote for a proposal.

        :param caller: Must be a registered voter who has not voted yet.
        :param proposal_id: Id of an existing proposal; 0 is the genesis
            (no opinion) proposal.
        :raises Unauthorized: If the caller is not a registered voter.
        :raises PhaseNotOpen: Outside the voting session.
        :raises AlreadyVoted: If the caller has already voted.
        :raises NotFound: If there is no proposal with that id.
        '''
        voter = self._voters.check_voter(caller)
        self._require_phase(
            WorkflowStatus.VOTING_SESSION_STARTED,
            'Voting session havent started yet'
        )
        self._voters.check_can_vote(voter)
        self._proposals.check_exists(proposal_id)
        self._voters.mark_voted(voter, proposal_id)
        self._proposals.add_vote(proposal_id)
        return self._emit(Voted(caller, proposal_id))

    # workflow

    @_rejections_logged
    def advance_phase(self,
                      caller: Hashable,
                      target: WorkflowStatus,
                      ) -> PhaseChanged:
        '''Move the workflow into the target phase.

        Dispatches to the operation performing that transition, so moving to
        ``VOTES_TALLIED`` tallies the votes.

        :raises Unauthorized: If the caller is not the administrator.
        :raises InvalidPhaseTransition: If target does not immediately
            follow the current phase or no transition leads to it.
        '''
        self.authorizer.check(caller)
        if target not in self.TRANSITION_ENTRY_POINTS:
            raise InvalidPhaseTransition(
                self._status, None, f'no transition leads to {target}'
            )
        check_transition(self._status, target)
        # unwrapped, rejections are logged once by this method
        entry_point = getattr(type(self), self.TRANSITION_ENTRY_POINTS[target])
        return entry_point.__wrapped__(self, caller)

    @_rejections_logged
    def start_proposals_registration(self, caller: Hashable) -> PhaseChanged:
        '''Open proposal registration, creating the genesis proposal.'''
        target = WorkflowStatus.PROPOSALS_REGISTRATION_STARTED
        self.authorizer.check(caller)
        check_transition(self._status, target)
        self._proposals.add_genesis(self.genesis_description)
        return self._change_status(target)

    @_rejections_logged
    def end_proposals_registration(self, caller: Hashable) -> PhaseChanged:
        return self._advance(
            caller, WorkflowStatus.PROPOSALS_REGISTRATION_ENDED
        )

    @_rejections_logged
    def start_voting_session(self, caller: Hashable) -> PhaseChanged:
        return self._advance(caller, WorkflowStatus.VOTING_SESSION_STARTED)

    @_rejections_logged
    def end_voting_session(self, caller: Hashable) -> PhaseChanged:
        return self._advance(caller, WorkflowStatus.VOTING_SESSION_ENDED)

    @_rejections_logged
    def tally_votes(self, caller: Hashable) -> PhaseChanged:
        '''Determine the winning proposal and close the election.

        The proposal with the most votes wins; among proposals with equal
        counts, the lowest id wins. The genesis proposal takes part.

        :raises Unauthorized: If the caller is not the administrator.
        :raises PhaseNotOpen: If the voting session has not ended, or the
            votes were already tallied.
        '''
        self.authorizer.check(caller)
        self._require_phase(
            WorkflowStatus.VOTING_SESSION_ENDED,
            TRANSITION_MESSAGES[WorkflowStatus.VOTES_TALLIED]
        )
        self._winning_proposal_id = tally.select_winner(
            tally.count_votes(self._proposals)
        )
        return self._change_status(WorkflowStatus.VOTES_TALLIED)

    def _advance(self,
                 caller: Hashable,
                 target: WorkflowStatus,
                 ) -> PhaseChanged:
        self.authorizer.check(caller)
        check_transition(self._status, target)
        return self._change_status(target)

    def _require_phase(self, expected: WorkflowStatus, message: str) -> None:
        if self._status is not expected:
            raise PhaseNotOpen(self._status, expected, message)

    def _change_status(self, target: WorkflowStatus) -> PhaseChanged:
        previous, self._status = self._status, target
        logger.info('workflow status changed from %s to %s',
                    previous.name, target.name)
        return self._emit(PhaseChanged(previous, target))

    def _emit(self, event: Event) -> Event:
        self._events.append(event)
        return event

    # snapshots

    def to_dict(self) -> Dict[str, Any]:
        '''Return a JSON-ready snapshot of the election state.

        The event log is not included.
        '''
        return {
            'class': scoped_class_name(self),
            'authorizer': serialize_value(self.authorizer),
            'genesis_description': self.genesis_description,
            'workflow_status': serialize_value(self._status),
            'voters': [voter.to_dict() for voter in self._voters],
            'proposals': [proposal.to_dict() for proposal in self._proposals],
            'winning_proposal_id': self._winning_proposal_id,
        }

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> Election:
        '''Restore an election from a snapshot made by :meth:`to_dict`.

        :raises ValueError: If the snapshot is incomplete or inconsistent.
        '''
        try:
            election = cls(
                deserialize_value(params['authorizer']),
                genesis_description=params['genesis_description'],
            )
            status = deserialize_value(params['workflow_status'])
            voters = deserialize_value(params['voters'])
            proposals = deserialize_value(params['proposals'])
            winning_proposal_id = params['winning_proposal_id']
        except KeyError as err:
            raise ValueError(f'incomplete election snapshot: missing {err}')
        except ElectionError as err:
            raise ValueError(f'invalid election snapshot: {err}') from err
        if not isinstance(status, WorkflowStatus):
            raise ValueError(f'invalid workflow status: {status!r}')
        if not isinstance(voters, list) \
                or not all(isinstance(voter, Voter) for voter in voters):
            raise ValueError('invalid voter records in snapshot')
        if not isinstance(proposals, list) \
                or not all(isinstance(prop, Proposal) for prop in proposals):
            raise ValueError('invalid proposal records in snapshot')
        try:
            voter_registry = VoterRegistry(voters)
        except ElectionError as err:
            raise ValueError(f'invalid election snapshot: {err}') from err
        proposal_registry = ProposalRegistry(proposals)
        check_consistency(
            status, voter_registry, proposal_registry, winning_proposal_id
        )
        election._voters = voter_registry
        election._proposals = proposal_registry
        election._status = status
        election._winning_proposal_id = winning_proposal_id
        return election

    def __repr__(self) -> str:
        return (
            f'<Election({self._status.name}, {len(self._voters)} voters,'
            f' {len(self._proposals)} proposals)>'
        )
