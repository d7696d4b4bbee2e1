import sys
import os
import json
import logging

import pytest

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
import votingledger.persist
from votingledger.election import Election
from votingledger.errors import Unauthorized, PhaseNotOpen, \
    InvalidPhaseTransition, DuplicateVoter, EmptyProposal, NotFound, \
    AlreadyVoted
from votingledger.events import PhaseChanged, VoterRegistered, \
    ProposalRegistered, Voted
from votingledger.workflow import WorkflowStatus, PREDECESSORS

OWNER = 'owner'
VOTER1 = 'voter1'
VOTER2 = 'voter2'
VOTER3 = 'voter3'

WS = WorkflowStatus


def make_election(status=WS.REGISTERING_VOTERS,
                  voters=(),
                  proposals=(),
                  votes=None,
                  ):
    '''Create an election driven up to the given phase.

    Proposals are submitted by the first voter; votes map voters to
    proposal ids.
    '''
    election = Election.with_owner(OWNER)
    for voter in voters:
        election.register_voter(OWNER, voter)
    if status >= WS.PROPOSALS_REGISTRATION_STARTED:
        election.start_proposals_registration(OWNER)
        for description in proposals:
            election.submit_proposal(voters[0], description)
    if status >= WS.PROPOSALS_REGISTRATION_ENDED:
        election.end_proposals_registration(OWNER)
    if status >= WS.VOTING_SESSION_STARTED:
        election.start_voting_session(OWNER)
        for voter, proposal_id in (votes or {}).items():
            election.cast_vote(voter, proposal_id)
    if status >= WS.VOTING_SESSION_ENDED:
        election.end_voting_session(OWNER)
    if status >= WS.VOTES_TALLIED:
        election.tally_votes(OWNER)
    assert election.workflow_status is status
    return election


def test_owner():
    election = Election.with_owner(OWNER)
    assert election.owner == OWNER
    assert election.workflow_status is WS.REGISTERING_VOTERS
    assert election.current_phase() is WS.REGISTERING_VOTERS
    assert election.winning_proposal_id == 0
    assert election.n_voters == 0
    assert election.n_proposals == 0
    assert len(election.events) == 0


def test_full_cycle_events():
    election = Election.with_owner(OWNER)
    events = [
        election.register_voter(OWNER, VOTER1),
        election.register_voter(OWNER, VOTER2),
        election.start_proposals_registration(OWNER),
        election.submit_proposal(VOTER1, 'P1'),
        election.submit_proposal(VOTER2, 'P2'),
        election.end_proposals_registration(OWNER),
        election.start_voting_session(OWNER),
        election.cast_vote(VOTER1, 2),
        election.cast_vote(VOTER2, 2),
        election.end_voting_session(OWNER),
        election.tally_votes(OWNER),
    ]
    assert events == [
        VoterRegistered(VOTER1),
        VoterRegistered(VOTER2),
        PhaseChanged(WS.REGISTERING_VOTERS, WS.PROPOSALS_REGISTRATION_STARTED),
        ProposalRegistered(1),
        ProposalRegistered(2),
        PhaseChanged(WS.PROPOSALS_REGISTRATION_STARTED,
                     WS.PROPOSALS_REGISTRATION_ENDED),
        PhaseChanged(WS.PROPOSALS_REGISTRATION_ENDED,
                     WS.VOTING_SESSION_STARTED),
        Voted(VOTER1, 2),
        Voted(VOTER2, 2),
        PhaseChanged(WS.VOTING_SESSION_STARTED, WS.VOTING_SESSION_ENDED),
        PhaseChanged(WS.VOTING_SESSION_ENDED, WS.VOTES_TALLIED),
    ]
    assert list(election.events) == events
    assert len(election.events.of_type(PhaseChanged)) == 5
    assert election.winning_proposal_id == 2


def test_events_read_only():
    election = make_election(WS.PROPOSALS_REGISTRATION_STARTED, voters=[VOTER1])
    assert not hasattr(election.events, 'append')
    with pytest.raises(TypeError):
        election.events[0] = PhaseChanged(WS.VOTES_TALLIED, WS.VOTES_TALLIED)
    assert election.events[0] == VoterRegistered(VOTER1)
    assert election.events[-1] == PhaseChanged(
        WS.REGISTERING_VOTERS, WS.PROPOSALS_REGISTRATION_STARTED
    )
    assert len(election.events) == 2


@pytest.mark.parametrize('target', [
    WS.PROPOSALS_REGISTRATION_STARTED,
    WS.PROPOSALS_REGISTRATION_ENDED,
    WS.VOTING_SESSION_STARTED,
    WS.VOTING_SESSION_ENDED,
    WS.VOTES_TALLIED,
])
def test_advance_phase(target):
    election = make_election(PREDECESSORS[target])
    event = election.advance_phase(OWNER, target)
    assert event.new is target
    assert event.previous.successor is target
    assert election.workflow_status is target


def test_advance_phase_creates_genesis():
    election = make_election(voters=[VOTER1])
    election.advance_phase(OWNER, WS.PROPOSALS_REGISTRATION_STARTED)
    assert election.get_proposal(VOTER1, 0).description == 'GENESIS'


def test_advance_phase_to_initial():
    election = make_election(WS.PROPOSALS_REGISTRATION_STARTED)
    with pytest.raises(InvalidPhaseTransition):
        election.advance_phase(OWNER, WS.REGISTERING_VOTERS)
    assert election.workflow_status is WS.PROPOSALS_REGISTRATION_STARTED


@pytest.mark.parametrize(('current', 'target'), [
    (WS.REGISTERING_VOTERS, WS.PROPOSALS_REGISTRATION_ENDED),
    (WS.REGISTERING_VOTERS, WS.VOTING_SESSION_ENDED),
    (WS.PROPOSALS_REGISTRATION_STARTED, WS.PROPOSALS_REGISTRATION_STARTED),
    (WS.VOTING_SESSION_STARTED, WS.PROPOSALS_REGISTRATION_ENDED),
    (WS.VOTES_TALLIED, WS.VOTING_SESSION_ENDED),
    (WS.REGISTERING_VOTERS, WS.VOTES_TALLIED),
    (WS.VOTING_SESSION_STARTED, WS.VOTES_TALLIED),
    (WS.VOTES_TALLIED, WS.VOTES_TALLIED),
])
def test_advance_phase_invalid(current, target):
    election = make_election(current)
    with pytest.raises(InvalidPhaseTransition):
        election.advance_phase(OWNER, target)
    assert election.workflow_status is current


def test_advance_phase_unauthorized():
    election = make_election(voters=[VOTER1])
    with pytest.raises(Unauthorized):
        election.advance_phase(VOTER1, WS.PROPOSALS_REGISTRATION_STARTED)


@pytest.mark.parametrize('caller', [OWNER, VOTER1])
def test_advance_phase_rejection_logged_once(caller, caplog):
    election = make_election(WS.VOTING_SESSION_STARTED, voters=[VOTER1])
    caplog.set_level(logging.DEBUG, logger='votingledger.election')
    with pytest.raises((InvalidPhaseTransition, Unauthorized)):
        election.advance_phase(caller, WS.VOTES_TALLIED)
    rejections = [
        record for record in caplog.records
        if record.name == 'votingledger.election'
        and 'rejected' in record.getMessage()
    ]
    assert len(rejections) == 1
    assert rejections[0].getMessage().startswith('advance_phase')


TRANSITIONS = [
    ('start_proposals_registration', WS.REGISTERING_VOTERS),
    ('end_proposals_registration', WS.PROPOSALS_REGISTRATION_STARTED),
    ('start_voting_session', WS.PROPOSALS_REGISTRATION_ENDED),
    ('end_voting_session', WS.VOTING_SESSION_STARTED),
    ('tally_votes', WS.VOTING_SESSION_ENDED),
]


@pytest.mark.parametrize(('operation', 'current'), TRANSITIONS)
def test_transition_unauthorized(operation, current):
    election = make_election(current, voters=[VOTER1])
    with pytest.raises(Unauthorized) as excinfo:
        getattr(election, operation)(VOTER1)
    assert excinfo.value.caller == VOTER1
    assert election.workflow_status is current


@pytest.mark.parametrize(('operation', 'current', 'error', 'message'), [
    ('start_proposals_registration', WS.PROPOSALS_REGISTRATION_STARTED,
     InvalidPhaseTransition, 'Registering proposals cant be started now'),
    ('end_proposals_registration', WS.PROPOSALS_REGISTRATION_ENDED,
     InvalidPhaseTransition, 'Registering proposals havent started yet'),
    ('start_voting_session', WS.VOTING_SESSION_STARTED,
     InvalidPhaseTransition, 'Registering proposals phase is not finished'),
    ('end_voting_session', WS.VOTING_SESSION_ENDED,
     InvalidPhaseTransition, 'Voting session havent started yet'),
    ('tally_votes', WS.VOTING_SESSION_STARTED,
     PhaseNotOpen, 'Current status is not voting session ended'),
])
def test_transition_wrong_phase(operation, current, error, message):
    election = make_election(current)
    with pytest.raises(error, match=message) as excinfo:
        getattr(election, operation)(OWNER)
    assert excinfo.value.current is current
    assert election.workflow_status is current


@pytest.mark.parametrize('operation', [name for name, _ in TRANSITIONS])
def test_terminal_phase(operation):
    election = make_election(WS.VOTES_TALLIED)
    with pytest.raises((InvalidPhaseTransition, PhaseNotOpen)):
        getattr(election, operation)(OWNER)
    assert election.workflow_status is WS.VOTES_TALLIED


def test_phase_only_moves_forward():
    election = make_election(voters=[VOTER1])
    seen = [election.workflow_status]
    for operation, _ in TRANSITIONS:
        getattr(election, operation)(OWNER)
        seen.append(election.workflow_status)
    assert seen == list(WS)
    assert seen == sorted(seen)


def _snapshot(election):
    return json.dumps(votingledger.persist.to_dict(election))


@pytest.mark.parametrize(('status', 'operation', 'args', 'error'), [
    (WS.REGISTERING_VOTERS, 'register_voter', (VOTER1, VOTER3), Unauthorized),
    (WS.REGISTERING_VOTERS, 'register_voter', (OWNER, VOTER1), DuplicateVoter),
    (WS.PROPOSALS_REGISTRATION_STARTED, 'register_voter', (OWNER, VOTER3),
     PhaseNotOpen),
    (WS.PROPOSALS_REGISTRATION_STARTED, 'submit_proposal', (VOTER3, 'P'),
     Unauthorized),
    (WS.PROPOSALS_REGISTRATION_STARTED, 'submit_proposal', (VOTER1, '  '),
     EmptyProposal),
    (WS.VOTING_SESSION_STARTED, 'submit_proposal', (VOTER1, 'P'),
     PhaseNotOpen),
    (WS.VOTING_SESSION_STARTED, 'cast_vote', (VOTER1, 999), NotFound),
    (WS.VOTING_SESSION_STARTED, 'cast_vote', (VOTER2, 1), AlreadyVoted),
    (WS.VOTING_SESSION_STARTED, 'cast_vote', (VOTER3, 1), Unauthorized),
    (WS.VOTING_SESSION_ENDED, 'cast_vote', (VOTER1, 1), PhaseNotOpen),
    (WS.VOTING_SESSION_ENDED, 'tally_votes', (VOTER1,), Unauthorized),
    (WS.VOTING_SESSION_ENDED, 'start_voting_session', (OWNER,),
     InvalidPhaseTransition),
    (WS.PROPOSALS_REGISTRATION_ENDED, 'start_proposals_registration',
     (OWNER,), InvalidPhaseTransition),
])
def test_rejection_leaves_state_unchanged(status, operation, args, error):
    votes = {VOTER2: 1} if status >= WS.VOTING_SESSION_STARTED else None
    election = make_election(
        status, voters=[VOTER1, VOTER2], proposals=['P1'], votes=votes
    )
    before = _snapshot(election)
    n_events = len(election.events)
    with pytest.raises(error):
        getattr(election, operation)(*args)
    assert _snapshot(election) == before
    assert len(election.events) == n_events


def test_independent_elections():
    first = make_election(WS.PROPOSALS_REGISTRATION_STARTED, voters=[VOTER1])
    second = Election.with_owner(VOTER1)
    second.register_voter(VOTER1, VOTER2)
    assert first.n_voters == 1
    assert second.n_voters == 1
    assert first.workflow_status is WS.PROPOSALS_REGISTRATION_STARTED
    assert second.workflow_status is WS.REGISTERING_VOTERS


def test_custom_genesis():
    election = Election.with_owner(OWNER, genesis_description='blank vote')
    election.register_voter(OWNER, VOTER1)
    election.start_proposals_registration(OWNER)
    assert election.get_proposal(VOTER1, 0).description == 'blank vote'


def test_empty_genesis():
    with pytest.raises(EmptyProposal):
        Election.with_owner(OWNER, genesis_description='')


def test_repr():
    election = make_election(voters=[VOTER1, VOTER2])
    assert repr(election) == '<Election(REGISTERING_VOTERS, 2 voters, 0 proposals)>'
