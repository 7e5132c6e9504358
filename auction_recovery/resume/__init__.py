"""
Cross-device resume subsystem for live auctions.

This package reconciles a snapshot fetched from the remote realtime store
with photos held on this device, rebuilds the replay state, and moves the
auction onto a fresh session id so every viewer resubscribes cleanly.
"""

from .models import Player, Team, BidLogEntry, ResumeState, Session, NormalizedSnapshot
from .normalizer import normalize_snapshot, coerce_ordered, NormalizationResult
from .rehydrator import merge_photos, rehydrate_players, RehydrationReport
from .resume_builder import build_resume_state
from .local_cache import LocalCache, purge_auction_cache, cleanup_stale_auctions
from .photo_store import PhotoStore
from .remote_store import RemoteStore, RemoteStoreError
from .session_rotation import SessionContext, SessionRotationManager
from .recovery_service import AuctionRecoveryService, NoRecoverableAuctionError, ResumeOutcome

__all__ = [
    'Player',
    'Team',
    'BidLogEntry',
    'ResumeState',
    'Session',
    'NormalizedSnapshot',
    'normalize_snapshot',
    'coerce_ordered',
    'NormalizationResult',
    'merge_photos',
    'rehydrate_players',
    'RehydrationReport',
    'build_resume_state',
    'LocalCache',
    'purge_auction_cache',
    'cleanup_stale_auctions',
    'PhotoStore',
    'RemoteStore',
    'RemoteStoreError',
    'SessionContext',
    'SessionRotationManager',
    'AuctionRecoveryService',
    'NoRecoverableAuctionError',
    'ResumeOutcome',
]
