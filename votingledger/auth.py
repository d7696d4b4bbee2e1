'''Administrator authorization.

The election never decides on its own who its administrator is; it asks an
:class:`Authorizer`. The usual choice is :class:`OwnerAuthorizer`, which
recognizes a single owner identity that can be handed over or given up.
'''

import abc
import logging
from typing import Hashable, Optional

from votingledger.errors import Unauthorized
from votingledger.persist import simple_serialization

logger = logging.getLogger(__name__)


class Authorizer(metaclass=abc.ABCMeta):
    '''An abstract class for administrator identity checks.'''
    @abc.abstractmethod
    def is_administrator(self, identity: Hashable) -> bool:
        '''Return True if identity may administer the election.

        :raises NotImplementedError:
        '''
        raise NotImplementedError

    def check(self, caller: Hashable) -> None:
        '''Check that the caller is the administrator.

        :raises Unauthorized: If it is not.
        '''
        if not self.is_administrator(caller):
            raise Unauthorized(caller, 'administrator')


@simple_serialization
class OwnerAuthorizer(Authorizer):
    '''Recognize a single owner as the administrator.

    :param owner: Identity of the owner. If None, nobody administers the
        election (the state after the ownership was renounced).
    '''
    def __init__(self, owner: Optional[Hashable]):
        self._owner = owner

    @property
    def owner(self) -> Optional[Hashable]:
        return self._owner

    def is_administrator(self, identity: Hashable) -> bool:
        return self._owner is not None and identity == self._owner

    def transfer_ownership(self,
                           caller: Hashable,
                           new_owner: Hashable,
                           ) -> None:
        '''Hand the administrator role over to another identity.

        :param caller: Must be the current owner.
        :param new_owner: The identity to become the owner.
        :raises Unauthorized: If the caller is not the owner.
        :raises ValueError: If the new owner is None; use
            :meth:`renounce_ownership` to leave the election without owner.
        '''
        self.check(caller)
        if new_owner is None:
            raise ValueError('invalid owner: None')
        logger.info('ownership transferred from %r to %r', caller, new_owner)
        self._owner = new_owner

    def renounce_ownership(self, caller: Hashable) -> None:
        '''Leave the election without any administrator.

        No administrator operation can succeed afterwards.
        '''
        self.check(caller)
        logger.info('ownership renounced by %r', caller)
        self._owner = None

    def __repr__(self) -> str:
        return f'<OwnerAuthorizer({self._owner!r})>'
