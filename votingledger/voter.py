'''Voter records and the registry of eligible voters.

Voters are keyed by their identity, which can be any hashable object
(an account address string is the usual choice). A voter is created once by
registration, marked once when casting their vote and never removed.
'''

from __future__ import annotations

import collections
import dataclasses
import logging
from typing import Any, Dict, Hashable, Iterator, List, Optional

from votingledger.errors import AlreadyVoted, DuplicateVoter, NotFound, \
    Unauthorized
from votingledger.persist import simple_serialization

logger = logging.getLogger(__name__)


@simple_serialization
@dataclasses.dataclass
class Voter:
    '''A voter registered for the election.

    :param identity: The voter's unique key.
    :param is_registered: Whether the voter is allowed to take part.
    :param has_voted: Whether the voter has already cast their vote.
    :param voted_proposal_id: Id of the proposal the voter chose, None before
        voting.
    '''
    identity: Hashable
    is_registered: bool = True
    has_voted: bool = False
    voted_proposal_id: Optional[int] = None

    def copy(self) -> Voter:
        return dataclasses.replace(self)


class VoterRegistry:
    '''The set of registered voters, in registration order.'''

    def __init__(self, voters: Optional[List[Voter]] = None):
        self._voters: Dict[Hashable, Voter] = collections.OrderedDict()
        for voter in (voters or []):
            if voter.identity in self._voters:
                raise DuplicateVoter(voter.identity)
            self._voters[voter.identity] = voter

    def __len__(self) -> int:
        return len(self._voters)

    def __contains__(self, identity: Any) -> bool:
        voter = self._voters.get(identity)
        return voter is not None and voter.is_registered

    def __iter__(self) -> Iterator[Voter]:
        return iter(self._voters.values())

    def check_voter(self, caller: Hashable) -> Voter:
        '''Return the caller's record if the caller is a registered voter.

        :raises Unauthorized: If the caller is not a registered voter.
        '''
        if caller not in self:
            raise Unauthorized(caller, 'voter', "You're not a voter")
        return self._voters[caller]

    def check_new(self, identity: Hashable) -> None:
        '''Check that identity can be registered.

        :raises DuplicateVoter: If identity is already registered.
        '''
        if identity in self._voters:
            raise DuplicateVoter(identity)

    def add(self, identity: Hashable) -> Voter:
        '''Register a new voter.

        :raises DuplicateVoter: If identity is already registered.
        '''
        self.check_new(identity)
        voter = Voter(identity)
        self._voters[identity] = voter
        logger.info('voter %r registered', identity)
        return voter

    def get(self, identity: Hashable) -> Voter:
        '''Return a copy of the voter's record.

        :raises NotFound: If no voter with this identity exists.
        '''
        try:
            return self._voters[identity].copy()
        except KeyError:
            raise NotFound('voter', identity)

    def check_can_vote(self, voter: Voter) -> None:
        '''Check that the voter has not voted yet.

        :raises AlreadyVoted: If the voter has.
        '''
        if voter.has_voted:
            raise AlreadyVoted(voter.identity)

    def mark_voted(self, voter: Voter, proposal_id: int) -> None:
        '''Record that the voter has chosen the given proposal.

        :raises AlreadyVoted: If the voter has already voted.
        '''
        self.check_can_vote(voter)
        voter.has_voted = True
        voter.voted_proposal_id = proposal_id
        logger.debug('voter %r voted for proposal %d',
                     voter.identity, proposal_id)

    def n_voted(self) -> int:
        '''Return how many voters have cast their vote.'''
        return sum(1 for voter in self._voters.values() if voter.has_voted)
