'''Errors raised by the election operations.

Every operation checks its preconditions before touching any state, so when
one of these is raised, the election is left exactly as it was before the
call. Nothing is retried internally; fixing the violated precondition is up
to the caller.
'''

from typing import Any, Hashable, Optional


class ElectionError(Exception):
    '''An election operation was rejected.'''
    pass


class Unauthorized(ElectionError):
    '''The caller lacks the role the operation requires.

    :param caller: Identity of the rejected caller.
    :param role: Role that was required (``administrator`` or ``voter``).
    :param message: Human-readable reason; derived from the role if omitted.
    '''
    def __init__(self,
                 caller: Hashable,
                 role: str = 'administrator',
                 message: Optional[str] = None,
                 ):
        self.caller = caller
        self.role = role
        if message is None:
            message = f'unauthorized account: {caller!r}, must be {role}'
        super().__init__(message)


class PhaseError(ElectionError):
    '''The election is not in the workflow phase the operation requires.

    :param current: Workflow status the election was in.
    :param expected: Workflow status that was required.
    :param message: Human-readable statement of the expected phase.
    '''
    def __init__(self, current: Any, expected: Any, message: str):
        self.current = current
        self.expected = expected
        super().__init__(message)


class PhaseNotOpen(PhaseError):
    '''The operation's window is not open in the current phase.'''


class InvalidPhaseTransition(PhaseError):
    '''A phase transition would skip, repeat or reverse a phase.'''


class DuplicateVoter(ElectionError):
    '''The identity is already in the voter registry.'''
    def __init__(self, identity: Hashable):
        self.identity = identity
        super().__init__('Already registered')


class EmptyProposal(ElectionError):
    '''A proposal description is empty or contains only whitespace.'''
    def __init__(self, description: str):
        self.description = description
        super().__init__('proposal description must not be empty')


class NotFound(ElectionError):
    '''A voter or proposal with the given key does not exist.

    :param kind: What was looked up (``voter`` or ``proposal``).
    :param key: The identity or proposal id looked up.
    '''
    def __init__(self, kind: str, key: Any, message: Optional[str] = None):
        self.kind = kind
        self.key = key
        if message is None:
            message = f'{kind.capitalize()} not found'
        super().__init__(message)


class AlreadyVoted(ElectionError):
    '''The voter has already cast their vote.'''
    def __init__(self, identity: Hashable):
        self.identity = identity
        super().__init__('You have already voted')
