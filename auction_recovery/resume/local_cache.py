"""
Device-local key/value cache and the current-session pointer.

Auction records are cached under `auction_<id>` keys as a lightweight backup
of the remote store (embedded photos stripped). The distinguished
`current_auction_id` key names the session this device is authoritative for.

Uses atomic writes (temp file + rename) so the cache file is never left
half-written. All access goes through one re-entrant lock per instance,
since the API serves requests from a thread pool.
"""

import copy
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from .. import config

logger = logging.getLogger(__name__)


def is_photo_url(photo: Any) -> bool:
    """URL photos are tiny references and are kept; anything else is an embedded payload."""
    return isinstance(photo, str) and photo.startswith(config.PHOTO_URL_PREFIXES)


def _strip_player_photo(player: Any) -> Any:
    if not isinstance(player, dict) or 'photo' not in player or is_photo_url(player['photo']):
        return player
    stripped = dict(player)
    del stripped['photo']
    return stripped


def _strip_players(players: Any) -> Any:
    # Lists or the store's index-keyed rendering of them
    if isinstance(players, list):
        return [_strip_player_photo(p) for p in players]
    if isinstance(players, dict):
        return {k: _strip_player_photo(p) for k, p in players.items()}
    return players


def strip_embedded_photos(state: Any) -> Any:
    """
    Return a copy of an auction state with embedded photos removed.

    Covers `players`, `soldPlayers`, `currentPlayer` and the rosters under
    `teamRosterData`. URL photos are kept. The input is not mutated.
    """
    if not isinstance(state, dict):
        return state

    stripped = dict(state)

    for key in ('players', 'soldPlayers'):
        if key in stripped:
            stripped[key] = _strip_players(stripped[key])

    if isinstance(stripped.get('currentPlayer'), dict):
        stripped['currentPlayer'] = _strip_player_photo(stripped['currentPlayer'])

    rosters = stripped.get('teamRosterData')
    if isinstance(rosters, dict):
        rosters = dict(rosters)
        for team_name, team_data in rosters.items():
            if isinstance(team_data, dict) and 'players' in team_data:
                team_data = dict(team_data)
                team_data['players'] = _strip_players(team_data['players'])
                rosters[team_name] = team_data
        stripped['teamRosterData'] = rosters

    return stripped


class LocalCache:
    """JSON-file key/value store standing in for the device's local storage."""

    def __init__(self, cache_file: Path):
        """
        Initialize local cache.

        Args:
            cache_file: Path of the JSON file backing the cache
        """
        self.cache_file = Path(cache_file)
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.cache_file.exists():
            return {}

        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to read local cache, starting empty: {e}")
            return {}

        if not isinstance(data, dict):
            logger.error(f"Local cache is not a mapping, starting empty: {self.cache_file}")
            return {}
        return data

    def _flush(self) -> None:
        # Caller holds the lock
        temp_file = self.cache_file.with_suffix('.tmp')

        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2)

        temp_file.replace(self.cache_file)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return copy.deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)
            self._flush()

    def remove(self, key: str) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            self._flush()
            return True

    def remove_many(self, keys: List[str]) -> int:
        with self._lock:
            removed = [key for key in keys if key in self._data]
            for key in removed:
                del self._data[key]
            if removed:
                self._flush()
            return len(removed)

    @property
    def current_auction_id(self) -> Optional[str]:
        with self._lock:
            return self._data.get(config.CURRENT_AUCTION_KEY)

    def set_current_auction_id(self, auction_id: str) -> None:
        self.set(config.CURRENT_AUCTION_KEY, auction_id)

    def save_auction_state(self, auction_id: str, state: dict) -> None:
        """
        Cache an auction state under `auction_<id>`, timestamped, photos stripped.

        Args:
            auction_id: Auction identifier
            state: Auction state mapping
        """
        stamped = dict(state) if isinstance(state, dict) else {}
        stamped['timestamp'] = int(time.time() * 1000)
        self.set(f"{config.AUCTION_STATE_KEY_PREFIX}{auction_id}", strip_embedded_photos(stamped))
        logger.debug(f"Cached auction state locally: {auction_id}")

    def load_auction_state(self, auction_id: str) -> Optional[dict]:
        state = self.get(f"{config.AUCTION_STATE_KEY_PREFIX}{auction_id}")
        return state if isinstance(state, dict) else None

    def auction_records(self) -> Dict[str, dict]:
        """Cached auction states keyed by auction id (setup records excluded)."""
        records = {}
        with self._lock:
            items = list(self._data.items())
        for key, value in items:
            if not key.startswith(config.AUCTION_STATE_KEY_PREFIX):
                continue
            if any(
                key.startswith(prefix)
                for prefix in config.AUCTION_KEY_PREFIXES
                if prefix != config.AUCTION_STATE_KEY_PREFIX
            ):
                continue
            if isinstance(value, dict):
                records[key[len(config.AUCTION_STATE_KEY_PREFIX):]] = copy.deepcopy(value)
        return records


def _is_auction_key(key: str) -> bool:
    return key.startswith(config.AUCTION_KEY_PREFIXES)


def purge_auction_cache(cache: LocalCache) -> int:
    """
    Remove every cached auction record before a resume.

    The current-session pointer is not an auction record and survives.
    Safe to call repeatedly; a second call removes nothing.

    Args:
        cache: Local cache to purge

    Returns:
        Number of records removed
    """
    cleared = cache.remove_many([key for key in cache.keys() if _is_auction_key(key)])
    logger.info(f"Cleared {cleared} cached auction records before resume")
    return cleared


def cleanup_stale_auctions(cache: LocalCache, app_version: str = config.APP_VERSION) -> int:
    """
    Start-up housekeeping for the local cache.

    When the app version changed, every cached auction record is dropped and
    the new version recorded. Otherwise only records that do not belong to
    the current auction are removed.

    Args:
        cache: Local cache to clean
        app_version: Version of the running application

    Returns:
        Number of records removed
    """
    stored_version = cache.get(config.APP_VERSION_KEY)
    if stored_version != app_version:
        cleared = cache.remove_many([key for key in cache.keys() if _is_auction_key(key)])
        cache.set(config.APP_VERSION_KEY, app_version)
        logger.info(
            f"App version changed: {stored_version} → {app_version}. "
            f"Cleared {cleared} cached auction records"
        )
        return cleared

    current = cache.current_auction_id
    stale = [
        key for key in cache.keys()
        if key.startswith(config.AUCTION_STATE_KEY_PREFIX)
        and not (current and current in key)
    ]
    cleared = cache.remove_many(stale)
    if cleared:
        logger.info(f"Cleaned up {cleared} old auction records from local cache")
    return cleared
