"""Git-backed sync engine for the art library.

Public API:

- ``SyncService`` -- the sync operations, one method each.
- ``Coordinator`` -- one commit / pull / push transaction.
- ``Inspector`` -- repository state and identity checks.
- ``Projector`` -- read-only "what would sync do" view.
- ``ConcurrencyGuard`` / ``SyncLog`` -- serialization and audit trail.
- ``Recovery`` -- conflict details, aborts and reset to remote.
"""

from .coordinator import Coordinator
from .errors import ConfigurationError, ResolutionError, SyncBusyError, SyncError
from .guard import ConcurrencyGuard
from .inspector import Inspector
from .log import SyncLog
from .models import (
    ChangeKind,
    ChangeSet,
    ChangeSummary,
    OperationKind,
    RepositoryStatus,
    SyncAttempt,
    SyncOutcome,
    TransactionResult,
)
from .projector import Projector
from .recovery import Recovery
from .service import SyncService

__all__ = [
    "ChangeKind",
    "ChangeSet",
    "ChangeSummary",
    "ConcurrencyGuard",
    "ConfigurationError",
    "Coordinator",
    "Inspector",
    "OperationKind",
    "Projector",
    "Recovery",
    "RepositoryStatus",
    "ResolutionError",
    "SyncAttempt",
    "SyncBusyError",
    "SyncError",
    "SyncLog",
    "SyncOutcome",
    "SyncService",
    "TransactionResult",
]
