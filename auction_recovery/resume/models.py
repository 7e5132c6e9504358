"""
Core data structures for auction snapshots and resume state.

These dataclasses describe a live auction as it is reconstructed on resume:
the player pool, team ledgers, the append-only bid log, the replay state the
bidding screen continues from, and the session identifier that owns the
remote path.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union


Amount = Union[int, float]


@dataclass
class Player:
    """A player in the auction pool."""

    id: Any                         # Stable across sessions; join key to the photo store
    name: str                       # Display name
    category: str = ''              # Category tag (e.g. 'Blue')
    photo: Optional[str] = None     # Embedded image or URL; never sent remotely when embedded
    attributes: Dict[str, Any] = field(default_factory=dict)  # age, flat, role, currentBid, ...

    def has_photo(self) -> bool:
        return bool(self.photo)

    def to_dict(self) -> dict:
        """Convert to dictionary in the remote document's player shape."""
        data = dict(self.attributes)
        data['id'] = self.id
        data['name'] = self.name
        data['category'] = self.category
        if self.photo:
            data['photo'] = self.photo
        return data


@dataclass
class Team:
    """A team's ledger in the auction."""

    name: str                       # Unique within an auction
    balance: Amount = 0             # Remaining purse, never negative after reconciliation
    acquired: int = 0               # Players bought so far
    attributes: Dict[str, Any] = field(default_factory=dict)  # logo, color, ...

    def to_dict(self) -> dict:
        data = dict(self.attributes)
        data['name'] = self.name
        data['balance'] = self.balance
        data['acquired'] = self.acquired
        return data


@dataclass
class BidLogEntry:
    """A single line of the append-only bid log."""

    round: int
    attempt: int
    timestamp: str
    player_name: str
    team: str = ''                  # Empty for unsold players
    amount: Optional[Amount] = None
    status: str = 'Unsold'
    category: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to the bidding screen's log shape (empty amount is '')."""
        data = {
            'round': self.round,
            'attempt': self.attempt,
            'timestamp': self.timestamp,
            'playerName': self.player_name,
            'team': self.team,
            'amount': '' if self.amount is None else self.amount,
            'status': self.status,
        }
        if self.category is not None:
            data['category'] = self.category
        if self.notes is not None:
            data['notes'] = self.notes
        return data


@dataclass
class ResumeState:
    """Replay state the bidding core continues from."""

    round: int
    player_idx: int
    sequence: List[str]                             # Player names in replay order
    balances: Dict[str, Dict[str, Amount]]          # team -> {'balance', 'acquired'}
    log: List[BidLogEntry] = field(default_factory=list)

    def cursor(self) -> tuple:
        return (self.round, self.player_idx)

    def to_dict(self) -> dict:
        return {
            'round': self.round,
            'playerIdx': self.player_idx,
            'sequence': list(self.sequence),
            'balances': {team: dict(entry) for team, entry in self.balances.items()},
            'log': [entry.to_dict() for entry in self.log],
        }


@dataclass
class Session:
    """One auction session; whoever holds the current id is authoritative."""

    auction_id: str
    resumed_from: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            'auction_id': self.auction_id,
            'resumed_from': self.resumed_from,
            'created_at': self.created_at.isoformat(),
        }


@dataclass
class NormalizedSnapshot:
    """A remote document coerced into ordered, typed, fully-defaulted records."""

    tournament: str
    players: List[Player]
    teams: List[Team]
    team_balances: List[Team]
    auction_log: List[BidLogEntry]
    round: int
    player_idx: int
    default_balance: Amount
    extras: Dict[str, Any] = field(default_factory=dict)  # Unrecognized fields, untouched

    def players_with_photos(self) -> int:
        return sum(1 for player in self.players if player.has_photo())

    def player_names(self) -> List[str]:
        return [player.name for player in self.players]

    def team_names(self) -> List[str]:
        return [team.name for team in self.teams]
