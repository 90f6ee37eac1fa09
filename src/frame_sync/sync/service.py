"""SyncService: the sync operations exposed to the HTTP and MCP surfaces.

Each public method returns a JSON-ready response body. Mutating operations
run the coordinator under the concurrency guard; a request arriving while
another transaction runs gets ``syncInProgress: true`` immediately. Read-only
operations never take the guard.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import Config
from ..core.client import GitClient
from ..validators import Validator, validate_asset
from . import reporter
from .coordinator import Coordinator
from .errors import SyncBusyError
from .guard import ConcurrencyGuard
from .log import SyncLog
from .models import OperationKind, TransactionResult
from .projector import Projector
from .recovery import Recovery

logger = logging.getLogger(__name__)

TRIGGERS = {
    "manual": OperationKind.MANUAL_SYNC,
    "auto": OperationKind.AUTO_PUSH,
}


class SyncService:
    """Facade over the sync engine for one working copy.

    Args:
        config: Validated runtime configuration.
        client: Git client; built from *config* when omitted.
        sync_log: Audit trail; built from ``config.log_path`` when omitted.
        guard: Shared guard; each service gets its own when omitted.
        validator: Asset validation collaborator.
    """

    def __init__(
        self,
        config: Config,
        client: GitClient | None = None,
        sync_log: SyncLog | None = None,
        guard: ConcurrencyGuard | None = None,
        validator: Validator = validate_asset,
    ) -> None:
        self.config = config
        self.sync_log = sync_log or SyncLog(Path(config.log_path), config.log_limit)
        self.guard = guard or ConcurrencyGuard()
        self.coordinator = Coordinator(
            config, self.sync_log, client=client, validator=validator
        )
        self.inspector = self.coordinator.inspector
        self.projector = Projector(self.inspector)
        self.recovery = Recovery(
            config, self.coordinator.client, self.inspector, self.sync_log
        )

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def run(self, operation: OperationKind) -> TransactionResult:
        """Run one transaction under the guard.

        Raises:
            SyncBusyError: If another transaction is running.
        """
        with self.guard.hold():
            return self.coordinator.run(operation)

    def check(self) -> dict:
        """Fetch and pull remote changes without committing or pushing."""
        try:
            result = self.run(OperationKind.CHECK)
        except SyncBusyError:
            return {**reporter.busy_to_json(), "pulledChanges": False, "skipped": True}
        return reporter.check_to_json(result)

    def full(self, trigger: str = "manual") -> dict:
        """Commit, pull and push.

        Args:
            trigger: ``"manual"`` for a user-initiated sync, ``"auto"`` for
                the post-upload hook.

        Raises:
            ValueError: If *trigger* is unknown.
        """
        operation = TRIGGERS.get(trigger)
        if operation is None:
            raise ValueError(
                f"Unknown trigger '{trigger}'. Valid triggers: {sorted(TRIGGERS)}"
            )
        try:
            result = self.run(operation)
        except SyncBusyError:
            return reporter.busy_to_json()
        return reporter.full_to_json(result)

    def auto_push(self) -> dict:
        return self.full("auto")

    def clear_logs(self) -> dict:
        self.sync_log.clear()
        logger.info("Sync log cleared")
        return {"success": True, "message": "Sync logs cleared"}

    def _recover(self, action) -> dict:
        try:
            with self.guard.hold():
                attempt = action()
        except SyncBusyError:
            return reporter.busy_to_json()
        return reporter.recovery_to_json(attempt)

    def abort_rebase(self) -> dict:
        return self._recover(self.recovery.abort_rebase)

    def abort_merge(self) -> dict:
        """Abort a stopped merge, falling back to a stopped rebase."""
        return self._recover(self.recovery.abort_merge)

    def reset_to_remote(self) -> dict:
        """Discard all local changes and unpushed commits. Destructive."""
        return self._recover(self.recovery.reset_to_remote)

    # ------------------------------------------------------------------
    # Read-only operations
    # ------------------------------------------------------------------

    def status(self) -> dict:
        return reporter.status_to_json(self.projector.project())

    def logs(self) -> dict:
        return reporter.logs_to_json(self.sync_log.entries())

    def git_status(self) -> dict:
        return reporter.git_status_to_json(self.inspector.inspect())

    def verify(self) -> dict:
        return reporter.verification_to_json(self.inspector.verify_identity())

    def conflicts(self) -> dict:
        return reporter.conflicts_to_json(self.recovery.conflicts())

    @property
    def busy(self) -> bool:
        return self.guard.busy

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def bootstrap(self) -> list[str]:
        """Create the library layout when the working copy lacks it."""
        return self.coordinator.store.ensure_layout(
            self.config.library_dir, self.config.thumbs_dir
        )

    def startup_check(self) -> dict | None:
        """Run the startup check when enabled; ``None`` when disabled."""
        if not self.config.check_on_startup:
            return None
        logger.info("Running startup sync check")
        body = self.check()
        if not body["success"]:
            logger.warning("Startup sync check failed: %s", body.get("error"))
        return body
