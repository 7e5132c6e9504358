"""
Orchestrator for resuming an in-progress auction on this device.

The AuctionRecoveryService coordinates all components:
- Fetches the snapshot (remote store first, local cache backup second)
- Purges cached auction records so nothing stale shadows the snapshot
- Normalizes the snapshot and restores photos from the local photo store
- Builds the resume state
- Rotates the session id and copies the snapshot forward
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional

from .. import config
from .local_cache import LocalCache, purge_auction_cache
from .models import ResumeState
from .normalizer import normalize_snapshot
from .photo_store import PhotoStore
from .rehydrator import RehydrationReport, rehydrate_players
from .remote_store import RemoteStore, RemoteStoreError
from .resume_builder import build_resume_state
from .schemas import AuctionSetup, RecentAuctionResponse, serialize_setup
from .session_rotation import (
    RotationResult,
    SessionContext,
    SessionRotationManager,
    generate_auction_id,
)

logger = logging.getLogger(__name__)


class NoRecoverableAuctionError(Exception):
    """Raised when no snapshot of the requested auction exists anywhere."""

    def __init__(self, auction_id: str):
        self.auction_id = auction_id
        super().__init__(f"No recoverable auction found for {auction_id}")


@dataclass
class ResumeOutcome:
    """Everything produced by a resume."""

    setup: AuctionSetup
    state: ResumeState
    context: SessionContext
    previous_auction_id: Optional[str]
    defaulted: List[str] = field(default_factory=list)
    photo_report: Optional[RehydrationReport] = None
    rotation: Optional[RotationResult] = None
    source: str = 'remote'                  # 'remote' or 'local'

    @property
    def copy_forward(self):
        return self.rotation.copy_forward if self.rotation else None


class AuctionRecoveryService:
    """Resumes auctions from the remote store onto a fresh session."""

    def __init__(
        self,
        remote_store: RemoteStore,
        cache: LocalCache,
        photo_store: PhotoStore,
        rotation_manager: Optional[SessionRotationManager] = None
    ):
        """
        Initialize recovery service.

        Args:
            remote_store: Remote store client
            cache: Local cache and session pointer
            photo_store: Local photo store
            rotation_manager: Session rotation (default: built from the above)
        """
        self.remote_store = remote_store
        self.cache = cache
        self.photo_store = photo_store
        self.rotation_manager = rotation_manager or SessionRotationManager(
            cache=cache,
            photo_store=photo_store,
            remote_store=remote_store
        )

    def current_context(self) -> SessionContext:
        return SessionContext.from_cache(self.cache)

    def list_recent_auctions(
        self,
        limit: int = config.RECENT_AUCTIONS_LIMIT
    ) -> List[RecentAuctionResponse]:
        """
        List cached auctions the operator can resume, newest first.

        Only records carrying an auction log are offered.
        """
        recent = []
        for auction_id, record in self.cache.auction_records().items():
            log = record.get('auctionLog')
            if not log:
                continue
            entries = log.values() if isinstance(log, dict) else log
            sold = sum(
                1 for entry in entries
                if isinstance(entry, dict) and entry.get('status') == 'Sold'
            )
            round_number = record.get('round')
            timestamp = record.get('timestamp')
            recent.append(RecentAuctionResponse(
                id=auction_id,
                round=round_number if isinstance(round_number, int) and round_number > 0 else 1,
                playersSold=sold,
                timestamp=timestamp if isinstance(timestamp, int) else 0
            ))

        recent.sort(key=lambda a: a.timestamp, reverse=True)
        return recent[:limit]

    def start_new_auction(self, context: Optional[SessionContext] = None) -> SessionContext:
        """Mint an id for a brand new auction and make it current."""
        context = context or self.current_context()
        auction_id = generate_auction_id()
        while auction_id == context.current_auction_id:
            auction_id = generate_auction_id()

        self.cache.set_current_auction_id(auction_id)
        logger.info(f"Started new auction: {auction_id}")
        return replace(context, current_auction_id=auction_id, session=None)

    def fetch_snapshot(self, auction_id: str) -> tuple:
        """
        Fetch an auction snapshot, falling back to the local cache backup.

        Returns:
            Tuple of (document, source)

        Raises:
            NoRecoverableAuctionError: When neither source holds the auction
        """
        logger.info(f"Fetching auction from remote store: {auction_id}")
        try:
            document = self.remote_store.fetch(auction_id)
        except RemoteStoreError as e:
            logger.warning(f"Remote store unavailable, trying local cache: {e}")
            document = None
        else:
            if document is not None:
                return document, 'remote'
            logger.info(f"Auction {auction_id} not in remote store, trying local cache")

        document = self.cache.load_auction_state(auction_id)
        if document is not None:
            logger.info(f"Loaded auction {auction_id} from local cache")
            return document, 'local'

        raise NoRecoverableAuctionError(auction_id)

    def resume(
        self,
        auction_id: str,
        context: Optional[SessionContext] = None,
        now: Optional[datetime] = None
    ) -> ResumeOutcome:
        """
        Resume an auction onto a new session id.

        Args:
            auction_id: Auction the operator chose to resume
            context: Session context (default: read from the local cache)
            now: Clock for defaulted log timestamps

        Returns:
            ResumeOutcome with the setup handoff and the rotated context

        Raises:
            NoRecoverableAuctionError: When no snapshot exists; the operator
                should be offered a new auction instead
        """
        context = context or self.current_context()

        logger.info("=" * 60)
        logger.info(f"RESUMING AUCTION {auction_id}")
        logger.info("=" * 60)

        document, source = self.fetch_snapshot(auction_id)

        # Nothing cached may shadow the snapshot from here on
        try:
            purge_auction_cache(self.cache)
        except OSError as e:
            logger.warning(f"Could not clear local cache: {e}")

        old_auction_id = str(
            document.get('auctionId')
            or auction_id
            or context.current_auction_id
            or ''
        )

        normalized = normalize_snapshot(document, now=now)
        snapshot = normalized.snapshot

        players, photo_report = rehydrate_players(snapshot.players, old_auction_id, self.photo_store)
        snapshot = replace(snapshot, players=players)

        state = build_resume_state(snapshot)

        rotation = self.rotation_manager.rotate(context, old_auction_id, document, players)
        setup = serialize_setup(snapshot, state, rotation.session.auction_id)

        logger.info(
            f"Resumed {auction_id} as {rotation.session.auction_id} "
            f"({len(normalized.defaulted)} defaults, "
            f"{photo_report.with_photo}/{photo_report.total_players} photos)"
        )

        return ResumeOutcome(
            setup=setup,
            state=state,
            context=rotation.context,
            previous_auction_id=old_auction_id or None,
            defaulted=normalized.defaulted,
            photo_report=photo_report,
            rotation=rotation,
            source=source
        )
