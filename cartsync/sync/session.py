"""
Session Transition Handler - reacts to auth status edges.

    unknown -> unauthenticated        load the guest cart from browser storage
    (unknown|unauthenticated) -> auth login protocol: merge guest cart, refresh
    authenticated -> unauthenticated  logout protocol: back up, show guest view

Edges are deduplicated: a repeated observation of the same status is a no-op,
and observations arriving while a transition is running are ignored, so a
guest cart is never merged twice.
"""
from dataclasses import dataclass
from typing import Optional

from cartsync.errors import (
    NOTIFY_GUEST_CORRUPT,
    NOTIFY_MERGE_FAILED,
    CartSyncError,
    MergeDataCorruptError,
)
from cartsync.logging import get_logger, sanitize_id_for_logging
from cartsync.storage.base import require_owner

from .orchestrator import SessionStatus, SyncOrchestrator

logger = get_logger(__name__)


@dataclass(frozen=True)
class MergeState:
    is_loading: bool = False
    is_complete: bool = False
    error: Optional[str] = None


class SessionTransitionHandler:
    def __init__(self, orchestrator: SyncOrchestrator):
        self.orchestrator = orchestrator
        self.status = SessionStatus.UNKNOWN
        self.owner_id: Optional[str] = None
        self.merge_state = MergeState()
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def observe(self, status: SessionStatus, owner_id: Optional[str] = None) -> Optional[str]:
        """
        Feed one auth status observation.

        Returns the name of the transition that ran ("guest", "login",
        "logout"), or None when the observation changed nothing.
        """
        status = SessionStatus(status)
        if status is SessionStatus.AUTHENTICATED:
            owner_id = require_owner(owner_id)

        if self._in_progress:
            logger.info(f"Session transition in progress, ignoring {status.value} observation")
            return None

        previous = self.status
        if status is SessionStatus.UNKNOWN or status is previous:
            if status is SessionStatus.AUTHENTICATED and owner_id != self.owner_id:
                logger.warning(
                    f"Owner changed to {sanitize_id_for_logging(owner_id)} without logout; ignoring"
                )
            return None

        self._in_progress = True
        try:
            if status is SessionStatus.AUTHENTICATED:
                self.status, self.owner_id = status, owner_id
                await self._login(owner_id)
                return "login"

            if previous is SessionStatus.AUTHENTICATED:
                previous_owner = self.owner_id
                self.status, self.owner_id = status, None
                await self._logout(previous_owner)
                return "logout"

            self.status = status
            self.orchestrator.set_session(SessionStatus.UNAUTHENTICATED)
            self.orchestrator.load_guest()
            return "guest"
        finally:
            self._in_progress = False

    # ==================== LOGIN ====================

    async def _login(self, owner_id: str) -> None:
        orchestrator = self.orchestrator
        browser = orchestrator.browser
        store = orchestrator.store

        logger.info(f"Login detected for user {sanitize_id_for_logging(owner_id)}")
        self.merge_state = MergeState(is_loading=True)
        orchestrator.set_session(SessionStatus.AUTHENTICATED, owner_id)
        browser.record_login()
        store.set_loading(True)

        backup_error = None
        try:
            guest_items = browser.read_backup_strict()
            source = "logout backup"
        except MergeDataCorruptError as e:
            # Only a logout with items rewrites the backup, so drop it now
            logger.error(f"Logout backup unreadable, discarding it: {e}")
            store.notify_error(NOTIFY_GUEST_CORRUPT)
            browser.clear_backup()
            backup_error = str(e)
            guest_items = []

        if not guest_items:
            try:
                guest_items = browser.read_guest_strict()
                source = "guest cart"
            except MergeDataCorruptError as e:
                logger.error(f"Guest cart unreadable, skipping merge: {e}")
                if backup_error is None:
                    store.notify_error(NOTIFY_GUEST_CORRUPT)
                self.merge_state = MergeState(is_complete=True, error=str(e))
                await orchestrator.refresh()
                return

        if not guest_items:
            logger.info("No guest cart to merge")
            self.merge_state = MergeState(is_complete=True, error=backup_error)
            await orchestrator.refresh()
            return

        logger.info(f"Merging {len(guest_items)} items from {source}")
        try:
            await orchestrator.server.merge(owner_id, guest_items)
        except CartSyncError as e:
            # Guest data stays in browser storage for the next login
            logger.error(f"Guest cart merge failed for user {sanitize_id_for_logging(owner_id)}: {e}")
            store.notify_error(NOTIFY_MERGE_FAILED)
            self.merge_state = MergeState(is_complete=True, error=str(e))
            await orchestrator.refresh()
            return

        browser.clear()
        browser.clear_backup()
        self.merge_state = MergeState(is_complete=True)
        await orchestrator.refresh()

    # ==================== LOGOUT ====================

    async def _logout(self, owner_id: Optional[str]) -> None:
        orchestrator = self.orchestrator
        browser = orchestrator.browser
        state = orchestrator.store.state

        logger.info(f"Logout detected for user {sanitize_id_for_logging(owner_id)}")
        orchestrator.set_session(SessionStatus.UNAUTHENTICATED)

        if state.items:
            browser.write_backup(state.items, is_open=state.is_open)
            browser.write(None, state.items, is_open=state.is_open)

            if owner_id:
                try:
                    await orchestrator.server.replace(owner_id, state.items)
                except CartSyncError as e:
                    logger.warning(f"Final cart save on logout failed: {e}")

        self.merge_state = MergeState()
        orchestrator.load_guest()
