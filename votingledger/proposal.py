'''Proposals and the append-only proposal registry.

Proposal ids are positions in the registry: dense, starting at 0 and
assigned in submission order. Id 0 always belongs to the genesis sentinel,
created when proposal registration opens, so that a vote meaning "no
opinion" is always possible.
'''

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterator, List, Optional

from votingledger.errors import EmptyProposal, NotFound
from votingledger.persist import simple_serialization

GENESIS_DESCRIPTION = 'GENESIS'
GENESIS_ID = 0

logger = logging.getLogger(__name__)


@simple_serialization
@dataclasses.dataclass
class Proposal:
    '''A proposal voters can vote for.

    :param description: Text of the proposal.
    :param vote_count: Number of votes received so far.
    '''
    description: str
    vote_count: int = 0

    def copy(self) -> Proposal:
        return dataclasses.replace(self)


def check_description(description: Any) -> None:
    '''Check that the description has some content besides whitespace.

    :raises EmptyProposal: If it does not.
    '''
    if not isinstance(description, str) or not description.strip():
        raise EmptyProposal(description)


class ProposalRegistry:
    '''Proposals in the order of their ids.'''

    def __init__(self, proposals: Optional[List[Proposal]] = None):
        self._proposals: List[Proposal] = list(proposals or [])

    def __len__(self) -> int:
        return len(self._proposals)

    def __iter__(self) -> Iterator[Proposal]:
        return iter(self._proposals)

    def __contains__(self, proposal_id: Any) -> bool:
        return (
            isinstance(proposal_id, int)
            and not isinstance(proposal_id, bool)
            and 0 <= proposal_id < len(self._proposals)
        )

    @property
    def has_genesis(self) -> bool:
        return bool(self._proposals)

    def add_genesis(self, description: str = GENESIS_DESCRIPTION) -> int:
        '''Create the sentinel proposal with id 0.

        :raises ValueError: If the registry is not empty.
        '''
        if self._proposals:
            raise ValueError('genesis proposal must be the first proposal')
        self._proposals.append(Proposal(description))
        logger.info('genesis proposal %r created', description)
        return GENESIS_ID

    def add(self, description: str) -> int:
        '''Append a proposal and return its id.

        :raises EmptyProposal: If the description is blank.
        '''
        check_description(description)
        self._proposals.append(Proposal(description))
        proposal_id = len(self._proposals) - 1
        logger.info('proposal %d registered', proposal_id)
        return proposal_id

    def check_exists(self, proposal_id: Any) -> None:
        '''Check that a proposal with this id exists.

        :raises NotFound: If it does not.
        '''
        if proposal_id not in self:
            raise NotFound('proposal', proposal_id)

    def get(self, proposal_id: int) -> Proposal:
        '''Return a copy of the proposal.

        :raises NotFound: If the id is out of range.
        '''
        self.check_exists(proposal_id)
        return self._proposals[proposal_id].copy()

    def add_vote(self, proposal_id: int) -> None:
        '''Count one more vote for the proposal.

        :raises NotFound: If the id is out of range.
        '''
        self.check_exists(proposal_id)
        self._proposals[proposal_id].vote_count += 1

    def vote_counts(self) -> List[int]:
        '''Return the vote counts indexed by proposal id.'''
        return [proposal.vote_count for proposal in self._proposals]
