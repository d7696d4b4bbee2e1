'''Vote counting and winner selection.

The winner is the proposal with the most votes. Ties go to the proposal
reached first in ascending id order, i.e. the lowest id, which makes the
genesis sentinel the winner of an election nobody voted in.
'''

import logging
from typing import Iterable, Dict, Tuple

from votingledger.proposal import Proposal

logger = logging.getLogger(__name__)


def count_votes(proposals: Iterable[Proposal]) -> Dict[int, int]:
    '''Return a mapping of proposal ids to their vote counts.

    The mapping is ordered by ascending id.
    '''
    return {
        proposal_id: proposal.vote_count
        for proposal_id, proposal in enumerate(proposals)
    }


def leader(counts: Dict[int, int]) -> Tuple[int, int]:
    '''Return the leading proposal id and its vote count.

    Performs a single pass in the iteration order of counts; a later
    proposal takes the lead only with strictly more votes.

    :param counts: Vote counts keyed by proposal id, in ascending id order.
    :raises ValueError: If there are no proposals.
    '''
    if not counts:
        raise ValueError('cannot select a winner from no proposals')
    best_id, best_count = None, -1
    for proposal_id, n_votes in counts.items():
        if n_votes > best_count:
            best_id, best_count = proposal_id, n_votes
    return best_id, best_count


def select_winner(counts: Dict[int, int]) -> int:
    '''Return the id of the proposal with the most votes, lowest id on ties.

    :param counts: Vote counts keyed by proposal id, in ascending id order.
    :raises ValueError: If there are no proposals.
    '''
    winner, n_votes = leader(counts)
    logger.info('proposal %d wins with %d votes out of %d',
                winner, n_votes, sum(counts.values()))
    return winner
