"""
Derive the replay state an auction continues from.

The resume state is never persisted on its own; it is rebuilt from the
normalized snapshot on every resume:
- Sequence: player names in normalized player order
- Balances: team ledger keyed by team name (unnamed ledgers skipped)
- Log: every normalized log entry, in order
- Cursor: (round, playerIdx) copied from the snapshot
"""

import copy
import logging

from .models import NormalizedSnapshot, ResumeState

logger = logging.getLogger(__name__)


def build_balances(snapshot: NormalizedSnapshot) -> dict:
    """
    Build the team -> {balance, acquired} ledger.

    Args:
        snapshot: Normalized snapshot

    Returns:
        Dict keyed by team name; later duplicates overwrite earlier ones
    """
    balances = {}
    for ledger in snapshot.team_balances:
        if not ledger.name:
            logger.debug("Skipping team balance entry without a name")
            continue
        balances[ledger.name] = {
            'balance': ledger.balance,
            'acquired': ledger.acquired
        }
    return balances


def build_resume_state(snapshot: NormalizedSnapshot) -> ResumeState:
    """
    Build the ResumeState for a normalized snapshot.

    Never raises: the snapshot is already fully defaulted, so a partially
    corrupt remote document still yields a playable resume.

    Args:
        snapshot: Normalized snapshot

    Returns:
        ResumeState for the bidding core
    """
    state = ResumeState(
        round=snapshot.round,
        player_idx=snapshot.player_idx,
        sequence=snapshot.player_names(),
        balances=build_balances(snapshot),
        log=copy.deepcopy(snapshot.auction_log)
    )

    sold = sum(1 for entry in state.log if entry.status == 'Sold')
    logger.info(
        f"Built resume state: round {state.round}, playerIdx {state.player_idx}, "
        f"{len(state.sequence)} players in sequence, {len(state.balances)} teams, "
        f"{len(state.log)} log entries ({sold} sold)"
    )

    return state
