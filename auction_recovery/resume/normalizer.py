"""
Normalize raw remote-store documents into typed auction snapshots.

The realtime store silently rewrites ordered collections into mappings keyed
by numeric-looking strings ({"0": ..., "1": ...}), drops empty collections and
null fields, and keeps whatever partial state the last writer left behind.
Everything downstream of this module works on a NormalizedSnapshot, so the
array-vs-mapping question is answered exactly once, here.

Normalization never raises and never mutates its input. Every default that
fires is recorded by field path so callers can see exactly what was repaired.
"""

import copy
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .. import config
from .models import Amount, BidLogEntry, NormalizedSnapshot, Player, Team

logger = logging.getLogger(__name__)


# Either a real sequence or the store's index-keyed rendering of one
OrderedOrIndexed = Union[Sequence, Mapping]

KNOWN_FIELDS = {
    'tournament', 'players', 'teams', 'teamBalances', 'auctionLog',
    'round', 'playerIdx', 'defaultBalance',
}

PLAYER_FIELDS = {'id', 'name', 'category', 'photo'}
TEAM_FIELDS = {'name', 'balance', 'acquired'}


@dataclass
class NormalizationResult:
    """Normalized snapshot plus the field paths whose defaults fired."""

    snapshot: NormalizedSnapshot
    defaulted: List[str] = field(default_factory=list)

    def was_defaulted(self, path: str) -> bool:
        return path in self.defaulted


def is_ordered_or_indexed(value: Any) -> bool:
    """True for lists/tuples and for mappings (index-keyed or not)."""
    if isinstance(value, (str, bytes)):
        return False
    return isinstance(value, (Sequence, Mapping))


def _is_index_key(key: Any) -> bool:
    if isinstance(key, bool):
        return False
    if isinstance(key, int):
        return key >= 0
    return isinstance(key, str) and key.isascii() and key.isdecimal()


def coerce_ordered(value: Any) -> List[Any]:
    """
    Coerce an ordered-or-indexed collection to a list.

    Mappings are ordered by ascending numeric key; keys that do not look
    numeric follow in iteration order. Null holes left by sparse arrays are
    skipped. Anything that is not a collection yields an empty list.

    Args:
        value: List, tuple, or mapping as delivered by the remote store

    Returns:
        New list of the collection's items (items themselves not copied)
    """
    if not is_ordered_or_indexed(value):
        return []

    if isinstance(value, Mapping):
        indexed = sorted(
            (key for key in value.keys() if _is_index_key(key)),
            key=int
        )
        others = [key for key in value.keys() if not _is_index_key(key)]
        items = [value[key] for key in indexed + others]
    else:
        items = list(value)

    return [item for item in items if item is not None]


def parse_number(value: Any) -> Optional[Amount]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return parse_number(float(text))
        except (ValueError, OverflowError):
            return None
    return None


def parse_int(value: Any, minimum: int) -> Optional[int]:
    number = parse_number(value)
    if number is None:
        return None
    if isinstance(number, float):
        if not number.is_integer():
            return None
        number = int(number)
    return number if number >= minimum else None


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (Mapping, list, tuple)):
        return None
    return str(value)


def _normalize_player(raw: Any, path: str, defaulted: List[str]) -> Optional[Player]:
    if not isinstance(raw, Mapping):
        defaulted.append(path)
        return None

    name = _as_text(raw.get('name'))
    if name is None:
        defaulted.append(f"{path}.name")
        name = ''

    player_id = raw.get('id')
    # Ids are photo-store keys and must be scalar
    if player_id is None or player_id == '' or isinstance(player_id, (Mapping, list, tuple)):
        defaulted.append(f"{path}.id")
        player_id = name

    category = _as_text(raw.get('category'))
    if category is None:
        category = ''

    photo = raw.get('photo')
    if not isinstance(photo, str) or not photo:
        photo = None

    attributes = {
        key: copy.deepcopy(value)
        for key, value in raw.items()
        if key not in PLAYER_FIELDS
    }

    return Player(
        id=copy.deepcopy(player_id),
        name=name,
        category=category,
        photo=photo,
        attributes=attributes
    )


def _normalize_team(
    raw: Any,
    path: str,
    defaulted: List[str],
    default_balance: Amount
) -> Optional[Team]:
    if not isinstance(raw, Mapping):
        defaulted.append(path)
        return None

    name = _as_text(raw.get('name'))
    if name is None:
        defaulted.append(f"{path}.name")
        name = ''

    balance = parse_number(raw.get('balance'))
    if balance is None:
        defaulted.append(f"{path}.balance")
        balance = default_balance
    elif balance < 0:
        logger.warning(f"Clamping negative balance for team '{name}': {balance} → 0")
        defaulted.append(f"{path}.balance")
        balance = 0

    acquired = parse_int(raw.get('acquired'), minimum=0)
    if acquired is None:
        if 'acquired' in raw:
            defaulted.append(f"{path}.acquired")
        acquired = 0

    attributes = {
        key: copy.deepcopy(value)
        for key, value in raw.items()
        if key not in TEAM_FIELDS
    }

    return Team(name=name, balance=balance, acquired=acquired, attributes=attributes)


def _normalize_log_entry(
    raw: Any,
    path: str,
    defaulted: List[str],
    timestamp_now: str
) -> BidLogEntry:
    if not isinstance(raw, Mapping):
        # Keep the line; a log entry is never dropped
        defaulted.append(path)
        return BidLogEntry(
            round=config.DEFAULT_ROUND,
            attempt=config.DEFAULT_ATTEMPT,
            timestamp=timestamp_now,
            player_name='',
            status=config.DEFAULT_STATUS,
            notes=_as_text(raw)
        )

    round_number = parse_int(raw.get('round'), minimum=1)
    if round_number is None:
        defaulted.append(f"{path}.round")
        round_number = config.DEFAULT_ROUND

    attempt = parse_int(raw.get('attempt'), minimum=1)
    if attempt is None:
        defaulted.append(f"{path}.attempt")
        attempt = config.DEFAULT_ATTEMPT

    timestamp = _as_text(raw.get('timestamp'))
    if not timestamp:
        defaulted.append(f"{path}.timestamp")
        timestamp = timestamp_now

    status = raw.get('status')
    if status not in config.BID_STATUSES:
        defaulted.append(f"{path}.status")
        status = config.DEFAULT_STATUS

    notes = raw.get('notes', raw.get('note'))

    return BidLogEntry(
        round=round_number,
        attempt=attempt,
        timestamp=timestamp,
        player_name=_as_text(raw.get('playerName')) or '',
        team=_as_text(raw.get('team')) or '',
        amount=parse_number(raw.get('amount')),
        status=status,
        category=_as_text(raw.get('category')),
        notes=_as_text(notes)
    )


def _collection(document: Mapping, key: str, defaulted: List[str]) -> List[Any]:
    value = document.get(key)
    if not is_ordered_or_indexed(value):
        defaulted.append(key)
        return []
    return coerce_ordered(value)


def _reconcile_references(snapshot: NormalizedSnapshot, defaulted: List[str]) -> None:
    """
    Make every name referenced by the log or the balances resolvable.

    Unknown players become default player records appended to the pool; unknown
    teams are synthesized with the default balance and zero acquisitions.
    """
    known_players = set(snapshot.player_names())
    for entry in snapshot.auction_log:
        if entry.player_name and entry.player_name not in known_players:
            snapshot.players.append(Player(
                id=entry.player_name,
                name=entry.player_name,
                category=entry.category or ''
            ))
            known_players.add(entry.player_name)
            defaulted.append(f"players[+{entry.player_name}]")

    known_teams = set(snapshot.team_names())
    for ledger in snapshot.team_balances:
        if ledger.name and ledger.name not in known_teams:
            snapshot.teams.append(Team(
                name=ledger.name,
                balance=ledger.balance,
                acquired=ledger.acquired
            ))
            known_teams.add(ledger.name)
            defaulted.append(f"teams[+{ledger.name}]")

    ledger_names = {ledger.name for ledger in snapshot.team_balances}
    for entry in snapshot.auction_log:
        if not entry.team or entry.team in known_teams:
            continue
        snapshot.teams.append(Team(name=entry.team, balance=snapshot.default_balance))
        known_teams.add(entry.team)
        defaulted.append(f"teams[+{entry.team}]")
        if entry.team not in ledger_names:
            snapshot.team_balances.append(Team(name=entry.team, balance=snapshot.default_balance))
            ledger_names.add(entry.team)
            defaulted.append(f"teamBalances[+{entry.team}]")


def normalize_snapshot(document: Any, now: Optional[datetime] = None) -> NormalizationResult:
    """
    Convert a raw remote document into a NormalizedSnapshot.

    Args:
        document: Mapping fetched from the remote store (any shape tolerated)
        now: Clock used for defaulted log timestamps (default: datetime.now())

    Returns:
        NormalizationResult with the snapshot and the defaulted field paths
    """
    defaulted: List[str] = []
    timestamp_now = (now or datetime.now()).isoformat()

    if not isinstance(document, Mapping):
        defaulted.append('document')
        document = {}

    tournament = _as_text(document.get('tournament'))
    if not tournament:
        defaulted.append('tournament')
        tournament = config.DEFAULT_TOURNAMENT

    default_balance = parse_number(document.get('defaultBalance'))
    if default_balance is None or default_balance < 0:
        defaulted.append('defaultBalance')
        default_balance = config.DEFAULT_BALANCE

    round_number = parse_int(document.get('round'), minimum=1)
    if round_number is None:
        defaulted.append('round')
        round_number = config.DEFAULT_ROUND

    player_idx = parse_int(document.get('playerIdx'), minimum=0)
    if player_idx is None:
        defaulted.append('playerIdx')
        player_idx = config.DEFAULT_PLAYER_IDX

    players = []
    for i, raw in enumerate(_collection(document, 'players', defaulted)):
        player = _normalize_player(raw, f"players[{i}]", defaulted)
        if player is not None:
            players.append(player)

    teams = []
    for i, raw in enumerate(_collection(document, 'teams', defaulted)):
        team = _normalize_team(raw, f"teams[{i}]", defaulted, default_balance)
        if team is not None:
            teams.append(team)

    team_balances = []
    for i, raw in enumerate(_collection(document, 'teamBalances', defaulted)):
        ledger = _normalize_team(raw, f"teamBalances[{i}]", defaulted, default_balance)
        if ledger is not None:
            team_balances.append(ledger)

    auction_log = [
        _normalize_log_entry(raw, f"auctionLog[{i}]", defaulted, timestamp_now)
        for i, raw in enumerate(_collection(document, 'auctionLog', defaulted))
    ]

    extras: Dict[str, Any] = {
        key: copy.deepcopy(value)
        for key, value in document.items()
        if key not in KNOWN_FIELDS
    }

    snapshot = NormalizedSnapshot(
        tournament=tournament,
        players=players,
        teams=teams,
        team_balances=team_balances,
        auction_log=auction_log,
        round=round_number,
        player_idx=player_idx,
        default_balance=default_balance,
        extras=extras
    )

    _reconcile_references(snapshot, defaulted)

    if defaulted:
        logger.debug(f"Normalization defaults fired for {len(defaulted)} fields: {defaulted}")

    logger.info(
        f"Normalized snapshot: {len(snapshot.players)} players, "
        f"{len(snapshot.teams)} teams, {len(snapshot.auction_log)} log entries "
        f"(round {snapshot.round}, playerIdx {snapshot.player_idx})"
    )

    return NormalizationResult(snapshot=snapshot, defaulted=defaulted)
