"""
Pydantic models for the resume handoff and the recovery API.

Field names follow the bidding screen's setup contract (camelCase), since the
same payload is handed to it unchanged.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .models import NormalizedSnapshot, ResumeState
from .normalizer import parse_int, parse_number


# ========== Resume Handoff ==========

class BalanceEntry(BaseModel):
    """A team's ledger in the resume state."""
    balance: Union[int, float]
    acquired: int = 0


class BidLogRecord(BaseModel):
    """A bid log line as the bidding screen consumes it."""
    round: int = Field(ge=1)
    attempt: int = Field(ge=1)
    timestamp: str
    playerName: str
    team: str = ''
    amount: Union[int, float, str] = Field('', description="Winning bid, '' when none")
    status: str
    category: Optional[str] = None
    notes: Optional[str] = None


class ResumeData(BaseModel):
    """Replay state the bidding core continues from."""
    round: int = Field(ge=1)
    playerIdx: int = Field(ge=0)
    sequence: List[str]
    balances: Dict[str, BalanceEntry]
    log: List[BidLogRecord]


class AuctionSetup(BaseModel):
    """
    Fully-populated setup handed to the bidding screen on resume.

    `bidLog` is always empty here: the historical log travels in
    `resumeData.log`.
    """
    tournament: str
    players: List[Dict[str, Any]]
    teams: List[Dict[str, Any]]
    bidLog: List[Dict[str, Any]] = Field(default_factory=list)
    playerImages: Dict[str, str] = Field(default_factory=dict)
    teamLogos: Dict[str, str] = Field(default_factory=dict)
    defaultBalance: Union[int, float] = 0
    resumeData: ResumeData
    auctionId: str
    minPlayersPerTeam: Optional[int] = None
    maxPlayersPerTeam: Optional[int] = None
    blueCapPercent: Optional[float] = None


# ========== Recovery API ==========

class RecentAuctionResponse(BaseModel):
    """An auction the recovery prompt offers to resume."""
    id: str
    round: int
    playersSold: int
    timestamp: int = Field(description="Epoch milliseconds of the cached save")
    status: str = 'In Progress'


class PurgeResponse(BaseModel):
    cleared: int


class SessionResponse(BaseModel):
    auctionId: Optional[str] = Field(None, description="Current session id on this device")


class ResumeResponse(BaseModel):
    """Response for POST /auctions/{auction_id}/resume."""
    setup: AuctionSetup
    previousAuctionId: Optional[str] = None
    defaulted: List[str] = Field(description="Field paths repaired during normalization")
    playersWithPhoto: int
    totalPlayers: int


# ========== Serializer Functions ==========

def _optional_int(value: Any) -> Optional[int]:
    return parse_int(value, minimum=0)


def _optional_float(value: Any) -> Optional[float]:
    number = parse_number(value)
    if number is None:
        return None
    try:
        return float(number)
    except OverflowError:
        return None


def serialize_resume_data(state: ResumeState) -> ResumeData:
    return ResumeData(**state.to_dict())


def serialize_setup(
    snapshot: NormalizedSnapshot,
    state: ResumeState,
    auction_id: str
) -> AuctionSetup:
    """
    Build the setup handoff for a resumed auction.

    Args:
        snapshot: Normalized snapshot (players already rehydrated)
        state: Resume state built from the snapshot
        auction_id: The new session id

    Returns:
        AuctionSetup ready for the bidding screen
    """
    extras = snapshot.extras
    return AuctionSetup(
        tournament=snapshot.tournament,
        players=[player.to_dict() for player in snapshot.players],
        teams=[team.to_dict() for team in snapshot.teams],
        defaultBalance=snapshot.default_balance,
        resumeData=serialize_resume_data(state),
        auctionId=auction_id,
        minPlayersPerTeam=_optional_int(extras.get('minPlayersPerTeam')),
        maxPlayersPerTeam=_optional_int(extras.get('maxPlayersPerTeam')),
        blueCapPercent=_optional_float(extras.get('blueCapPercent'))
    )
