"""
Local blob store for player photographs.

Photos are too large for the remote store, so they live on the device that
uploaded them: one JSON document per auction id mapping player id to photo.
JSON object keys are always strings, so callers must match ids in both their
native and string form.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable

from .models import Player

logger = logging.getLogger(__name__)


class PhotoStore:
    """Per-auction photo documents on local disk."""

    def __init__(self, store_dir: Path):
        """
        Initialize photo store.

        Args:
            store_dir: Directory holding one `<auction_id>.json` per auction
        """
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, auction_id: str) -> Path:
        return self.store_dir / f"{auction_id}.json"

    def load(self, auction_id: str) -> Dict[str, str]:
        """
        Load the photo map for an auction.

        Args:
            auction_id: Auction identifier the photos were saved under

        Returns:
            Mapping of player id (as string) to photo; empty if none stored
        """
        if not auction_id:
            return {}

        path = self._path(auction_id)
        if not path.exists():
            logger.debug(f"No photo document for auction {auction_id}")
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                photos = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to read photos for {auction_id}: {e}")
            return {}

        if not isinstance(photos, dict):
            return {}
        return {str(k): v for k, v in photos.items() if isinstance(v, str) and v}

    def save(self, auction_id: str, players: Iterable[Player]) -> int:
        """
        Save the photos of the given players under an auction id.

        Args:
            auction_id: Auction identifier to save under
            players: Players; only those carrying a photo are stored

        Returns:
            Number of photos written
        """
        photos = {str(p.id): p.photo for p in players if p.has_photo()}

        temp_path = self._path(auction_id).with_suffix('.tmp')
        with self._lock:
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(photos, f)

            temp_path.replace(self._path(auction_id))

        logger.info(f"Saved {len(photos)} photos → {self._path(auction_id)}")
        return len(photos)

    def delete(self, auction_id: str) -> None:
        path = self._path(auction_id)
        if path.exists():
            path.unlink()
            logger.warning(f"Deleted photo document: {path}")
