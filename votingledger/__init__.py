'''Votingledger - a single-election voting ledger.

An administrator registers eligible voters, the voters submit proposals and
each casts exactly one vote; the proposal with the most votes wins.

The whole election lives in one :class:`election.Election` object, which
drives the workflow through its phases (defined in the ``workflow`` module)
and guards its registries of voters (``voter`` module) and proposals
(``proposal`` module). Who the administrator is, is decided by an
authorizer from the ``auth`` module. The winner is picked by the functions
of the ``tally`` module. Successful operations produce the events defined in
``events``; rejected ones raise the errors from ``errors``. The ``persist``
module snapshots an election into JSON-ready dictionaries and back.
'''

from votingledger.auth import Authorizer, OwnerAuthorizer    # noqa: F401
from votingledger.election import Election    # noqa: F401
from votingledger.workflow import WorkflowStatus    # noqa: F401
