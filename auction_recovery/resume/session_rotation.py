"""
Session identifiers and rotation on resume.

Resuming an auction always moves it to a freshly minted identifier. Audience
displays subscribed to the old path stop receiving updates and must rejoin
through the new link, which guarantees nobody keeps mirroring a path that two
devices might write.

Rotation steps, each independently best-effort:
1. Record the new id as this device's current session
2. Save the rehydrated photos under the new id in the local photo store
3. Copy the full document forward to the new remote path (detached)

No uniqueness check against the remote store is made before adopting an id.
"""

import copy
import logging
import random
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .. import config
from .local_cache import LocalCache
from .models import Player, Session
from .photo_store import PhotoStore
from .remote_store import RemoteStore

logger = logging.getLogger(__name__)


def generate_auction_id(rng: Optional[random.Random] = None) -> str:
    """Short readable id for a brand new auction (no confusable characters)."""
    rng = rng or random
    return ''.join(
        rng.choice(config.AUCTION_ID_ALPHABET)
        for _ in range(config.AUCTION_ID_LENGTH)
    )


def generate_session_id(rng: Optional[random.Random] = None) -> str:
    """Uppercase base-36 id minted when an auction is resumed."""
    rng = rng or random
    return ''.join(
        rng.choice(config.SESSION_ID_ALPHABET)
        for _ in range(config.SESSION_ID_LENGTH)
    )


@dataclass(frozen=True)
class SessionContext:
    """
    The session this device currently holds, passed explicitly between steps.

    Built from the local cache pointer at the start of a flow; every step that
    changes the session returns a new context.
    """

    current_auction_id: Optional[str] = None
    session: Optional[Session] = None

    @classmethod
    def from_cache(cls, cache: LocalCache) -> 'SessionContext':
        return cls(current_auction_id=cache.current_auction_id)

    def adopt(self, session: Session) -> 'SessionContext':
        return replace(self, current_auction_id=session.auction_id, session=session)


@dataclass
class RotationResult:
    """Outcome of a session rotation."""

    context: SessionContext
    session: Session
    steps: List[str] = field(default_factory=list)      # Steps attempted, in order
    failures: List[str] = field(default_factory=list)   # Steps that failed
    copy_forward: Optional[Future] = None               # Detached remote write


class SessionRotationManager:
    """Mints a new session id and moves the auction onto it."""

    def __init__(
        self,
        cache: LocalCache,
        photo_store: PhotoStore,
        remote_store: RemoteStore,
        id_factory: Callable[[], str] = generate_session_id,
        executor: Optional[ThreadPoolExecutor] = None
    ):
        """
        Initialize rotation manager.

        Args:
            cache: Local cache holding the current-session pointer
            photo_store: Local photo store
            remote_store: Remote store client for the copy-forward write
            id_factory: Zero-argument callable returning a new session id
            executor: Executor running copy-forward writes (default: one worker)
        """
        self.cache = cache
        self.photo_store = photo_store
        self.remote_store = remote_store
        self.id_factory = id_factory
        self.executor = executor or ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix='copy-forward'
        )

    def mint(self, *previous_ids: Optional[str]) -> str:
        """Mint an id different from every previous one."""
        new_id = self.id_factory()
        while new_id in previous_ids:
            new_id = self.id_factory()
        return new_id

    def rotate(
        self,
        context: SessionContext,
        old_auction_id: Optional[str],
        document: Dict,
        players: List[Player]
    ) -> RotationResult:
        """
        Move a resumed auction to a new session id.

        Args:
            context: Session context before rotation
            old_auction_id: Id the auction was resumed from ('' or None if unknown)
            document: Full original document as fetched
            players: Rehydrated players (photos merged)

        Returns:
            RotationResult with the new context and the detached copy-forward future
        """
        new_id = self.mint(old_auction_id, context.current_auction_id)
        session = Session(auction_id=new_id, resumed_from=old_auction_id or None)
        result = RotationResult(context=context.adopt(session), session=session)

        logger.info(f"Resume: old auctionId {old_auction_id or '-'} → new auctionId {new_id}")

        # Step 1: current-session pointer
        result.steps.append('pointer')
        try:
            self.cache.set_current_auction_id(new_id)
        except OSError as e:
            logger.warning(f"Could not record current auction id {new_id}: {e}")
            result.failures.append('pointer')

        # Step 2: photos under the new id
        if any(p.has_photo() for p in players):
            result.steps.append('photos')
            try:
                self.photo_store.save(new_id, players)
            except OSError as e:
                logger.warning(f"Failed to save photos for new auction id {new_id}: {e}")
                result.failures.append('photos')

        # Step 3: copy-forward, never awaited
        if old_auction_id and old_auction_id != new_id:
            result.steps.append('copy_forward')
            result.copy_forward = self.copy_forward(old_auction_id, new_id, document)

        return result

    def copy_forward(self, old_auction_id: str, new_auction_id: str, document: Dict) -> Future:
        """
        Republish a document at the new id's remote path.

        The write runs detached; its outcome is only logged.

        Returns:
            Future of the write
        """
        complete_state = copy.deepcopy(document) if isinstance(document, dict) else {}
        complete_state.update({
            'auctionId': new_auction_id,
            'resumedFrom': old_auction_id,
            'resumedAt': datetime.now().isoformat(),
        })

        logger.info(f"Copying auction data from {old_auction_id} to {new_auction_id}")
        future = self.executor.submit(self.remote_store.write, new_auction_id, complete_state)
        future.add_done_callback(
            lambda f: self._log_copy_forward(f, old_auction_id, new_auction_id)
        )
        return future

    @staticmethod
    def _log_copy_forward(future: Future, old_auction_id: str, new_auction_id: str) -> None:
        error = future.exception()
        if error is None:
            logger.info(f"Auction data copied to remote store with new id: {new_auction_id}")
        else:
            logger.warning(
                f"Could not copy auction {old_auction_id} to {new_auction_id}: {error}. "
                f"Other devices will not see it until the next save"
            )

    def shutdown(self, wait: bool = False) -> None:
        self.executor.shutdown(wait=wait)
