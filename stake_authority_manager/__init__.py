"""Inspect stake accounts and reassign their staker/withdrawer authorities."""

from .errors import (
    ConfigurationError,
    ConfirmationTimeout,
    NetworkError,
    SignerDeclined,
    StakeAuthorityError,
    SubmissionRejected,
    ValidationRejected,
)
from .models import (
    AuthorityChangeRequest,
    AuthorityKind,
    OutcomeStatus,
    StakeAccountSnapshot,
    TransactionOutcome,
)
from .orchestrator import AttemptState, AuthorityChangeOrchestrator
from .rpc import StakeRPCClient
from .snapshot import StakeAccountInspector

__version__ = "0.1.0"
