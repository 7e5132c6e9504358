"""
Merge locally-held player photos back into a normalized snapshot.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Mapping

from .models import Player
from .photo_store import PhotoStore

logger = logging.getLogger(__name__)


@dataclass
class RehydrationReport:
    """Photo coverage after a merge."""

    total_players: int
    with_photo: int
    restored: int           # Photos attached from the local store during this merge

    @property
    def without_photo(self) -> int:
        return self.total_players - self.with_photo


def _lookup(photo_map: Mapping[Any, str], player_id: Any):
    photo = photo_map.get(player_id)
    if not photo:
        photo = photo_map.get(str(player_id))
    return photo or None


def merge_photos(players: List[Player], photo_map: Mapping[Any, str]) -> List[Player]:
    """
    Attach photos to players that do not already carry one.

    A photo already present on a player record always wins; the photo map is
    a fallback source only. Input players are not mutated.

    Args:
        players: Normalized players
        photo_map: Player id (native or string) to photo

    Returns:
        New list of players
    """
    merged = []
    for player in players:
        if not player.has_photo():
            photo = _lookup(photo_map, player.id)
            if photo:
                player = replace(player, photo=photo, attributes=dict(player.attributes))
        merged.append(player)
    return merged


def rehydrate_players(
    players: List[Player],
    auction_id: str,
    photo_store: PhotoStore
) -> tuple:
    """
    Restore photos for an auction from the local photo store.

    Args:
        players: Normalized players
        auction_id: Auction id the photos were saved under
        photo_store: Local photo store (read only)

    Returns:
        Tuple of (merged players, RehydrationReport)
    """
    photo_map = photo_store.load(auction_id)
    logger.info(f"Found {len(photo_map)} photos in local store for auction {auction_id}")

    merged = merge_photos(players, photo_map) if photo_map else list(players)

    had_photo = sum(1 for p in players if p.has_photo())
    with_photo = sum(1 for p in merged if p.has_photo())
    report = RehydrationReport(
        total_players=len(merged),
        with_photo=with_photo,
        restored=with_photo - had_photo
    )

    if photo_map:
        logger.info(f"Restored photos to {report.with_photo}/{report.total_players} players")
    else:
        logger.info("No photos found locally - players will display without photos")

    return merged, report
