"""
FastAPI server for auction recovery.

Provides HTTP endpoints for the recovery prompt: list resumable auctions,
resume one onto a fresh session, start a new auction, and clear the cache.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .. import config
from .local_cache import LocalCache, purge_auction_cache
from .photo_store import PhotoStore
from .recovery_service import AuctionRecoveryService, NoRecoverableAuctionError
from .remote_store import RemoteStore
from .schemas import (
    PurgeResponse,
    RecentAuctionResponse,
    ResumeResponse,
    SessionResponse,
)

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Live Auction Recovery API",
    description="Resume in-progress auctions across devices",
    version="1.0.0"
)

# CORS middleware for the auctioneer UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_recovery_service() -> AuctionRecoveryService:
    """Recovery service built from config (overridden in tests)."""
    return AuctionRecoveryService(
        remote_store=RemoteStore(config.REMOTE_DATABASE_URL),
        cache=LocalCache(Path(config.LOCAL_CACHE_FILE)),
        photo_store=PhotoStore(Path(config.PHOTO_STORE_DIR))
    )


@app.get("/auctions/recent", response_model=List[RecentAuctionResponse])
def list_recent_auctions(service: AuctionRecoveryService = Depends(get_recovery_service)):
    """
    List auctions cached on this device, newest first.

    Returns:
        Up to RECENT_AUCTIONS_LIMIT auctions with round and sold counts
    """
    return service.list_recent_auctions()


@app.post("/auctions/new", response_model=SessionResponse)
def start_new_auction(service: AuctionRecoveryService = Depends(get_recovery_service)):
    """Start a fresh auction instead of resuming."""
    context = service.start_new_auction()
    return SessionResponse(auctionId=context.current_auction_id)


@app.post("/auctions/{auction_id}/resume", response_model=ResumeResponse)
def resume_auction(
    auction_id: str,
    service: AuctionRecoveryService = Depends(get_recovery_service)
):
    """
    Resume an auction onto a new session id.

    Returns:
        ResumeResponse with the setup handoff for the bidding screen

    Raises:
        404 Not Found: If no recoverable auction exists
        500 Internal Server Error: If the resume fails unexpectedly
    """
    try:
        outcome = service.resume(auction_id)

    except NoRecoverableAuctionError as e:
        logger.warning(f"Cannot resume: {e}")
        raise HTTPException(
            status_code=404,
            detail=f"{e}. Start a new auction instead."
        )

    except Exception as e:
        logger.error(f"Failed to resume auction {auction_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Failed to resume auction: {e}")

    return ResumeResponse(
        setup=outcome.setup,
        previousAuctionId=outcome.previous_auction_id,
        defaulted=outcome.defaulted,
        playersWithPhoto=outcome.photo_report.with_photo,
        totalPlayers=outcome.photo_report.total_players
    )


@app.post("/cache/purge", response_model=PurgeResponse)
def purge_cache(service: AuctionRecoveryService = Depends(get_recovery_service)):
    """Clear every cached auction record on this device."""
    return PurgeResponse(cleared=purge_auction_cache(service.cache))


@app.get("/session/current", response_model=SessionResponse)
def get_current_session(service: AuctionRecoveryService = Depends(get_recovery_service)):
    """Current session id held by this device."""
    context = service.current_context()
    return SessionResponse(auctionId=context.current_auction_id)
