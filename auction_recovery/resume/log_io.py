"""
Resume log CSV export and import.

The bid log the operator downloads after every action doubles as an offline
resume file. State rows precede the log table:

    __STATE__,round,2
    __STATE__,playerIdx,5
    __STATE__,sequence,Asha|Ben|Chirag
    __STATE__,balances,Falcons=1200:3|Hawks=950:4
    Sequence,Round,Attempt,Timestamp,Player,Category,Team,Bid Amount,Status
    1,1,1,2025-01-04T10:02:11,Asha,Blue,Falcons,300,Sold

Older files lack the Category column; both layouts are read.
"""

import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List

import pandas as pd

from .. import config
from .models import BidLogEntry, ResumeState
from .normalizer import parse_int, parse_number

logger = logging.getLogger(__name__)

HEADER_START = 'Sequence,'


def _format_balances(balances: Dict[str, Dict]) -> str:
    return '|'.join(
        f"{team}={entry.get('balance', 0)}:{entry.get('acquired', 0)}"
        for team, entry in balances.items()
    )


def _parse_balances(value: str) -> Dict[str, Dict]:
    balances = {}
    for segment in value.split('|'):
        if not segment or '=' not in segment:
            continue
        team, _, amounts = segment.partition('=')
        if not team or not amounts:
            continue
        balance, _, acquired = amounts.partition(':')
        balances[team] = {
            'balance': parse_number(balance) or 0,
            'acquired': parse_int(acquired, minimum=0) or 0
        }
    return balances


def log_to_dataframe(log: List[BidLogEntry]) -> pd.DataFrame:
    """Tabulate a bid log in CSV column order."""
    rows = [
        {
            'Sequence': i,
            'Round': entry.round,
            'Attempt': entry.attempt,
            'Timestamp': entry.timestamp,
            'Player': entry.player_name,
            'Category': entry.category or '',
            'Team': entry.team,
            'Bid Amount': '' if entry.amount is None else entry.amount,
            'Status': entry.status,
        }
        for i, entry in enumerate(log, 1)
    ]
    return pd.DataFrame(rows, columns=config.LOG_CSV_COLUMNS)


def export_resume_csv(state: ResumeState, output_path: Path) -> None:
    """
    Write a resume state as a resume log CSV.

    Args:
        state: Resume state to export
        output_path: Path for CSV output
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    marker = config.LOG_STATE_MARKER
    state_rows = [
        f"{marker},round,{state.round}",
        f"{marker},playerIdx,{state.player_idx}",
        f"{marker},sequence,{'|'.join(state.sequence)}",
        f"{marker},balances,{_format_balances(state.balances)}",
    ]

    table = log_to_dataframe(state.log).to_csv(index=False, lineterminator='\n')

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        f.write('\n'.join(state_rows) + '\n')
        f.write(table)

    logger.info(f"Exported resume log ({len(state.log)} entries) to {output_path}")


def parse_resume_csv(text: str) -> ResumeState:
    """
    Parse resume log CSV text.

    Args:
        text: File contents

    Returns:
        ResumeState with log entries in file order

    Raises:
        ValueError: If the log header row is missing
    """
    text = text.lstrip('\ufeff').replace('\r', '')
    lines = [line for line in text.split('\n') if line.strip()]

    round_number = config.DEFAULT_ROUND
    player_idx = config.DEFAULT_PLAYER_IDX
    sequence: List[str] = []
    balances: Dict[str, Dict] = {}
    header_index = -1

    for i, line in enumerate(lines):
        if line.startswith(config.LOG_STATE_MARKER):
            parts = line.split(',', 2)
            key = parts[1] if len(parts) > 1 else ''
            value = parts[2] if len(parts) > 2 else ''
            if key == 'round':
                round_number = parse_int(value, minimum=1) or config.DEFAULT_ROUND
            elif key == 'playerIdx':
                parsed = parse_int(value, minimum=0)
                player_idx = config.DEFAULT_PLAYER_IDX if parsed is None else parsed
            elif key == 'sequence':
                sequence = [name for name in value.split('|') if name]
            elif key == 'balances':
                balances = _parse_balances(value)
        elif line.startswith(HEADER_START):
            header_index = i
            break

    if header_index == -1:
        raise ValueError(
            'Invalid resume CSV format: missing header. Expected header starting with "Sequence,"'
        )

    table = pd.read_csv(
        io.StringIO('\n'.join(lines[header_index:])),
        dtype=str,
        keep_default_na=False
    )
    if 'Category' not in table.columns:
        table['Category'] = ''

    log = []
    for row in table.to_dict('records'):
        status = row.get('Status', '')
        log.append(BidLogEntry(
            round=parse_int(row.get('Round'), minimum=1) or config.DEFAULT_ROUND,
            attempt=parse_int(row.get('Attempt'), minimum=1) or config.DEFAULT_ATTEMPT,
            timestamp=row.get('Timestamp') or datetime.now().isoformat(),
            player_name=row.get('Player', ''),
            team=row.get('Team', ''),
            amount=parse_number(row.get('Bid Amount')),
            status=status if status in config.BID_STATUSES else config.DEFAULT_STATUS,
            category=row.get('Category', '')
        ))

    logger.info(
        f"Parsed resume log: round {round_number}, {len(log)} log entries, "
        f"{len(sequence)} players in sequence"
    )

    return ResumeState(
        round=round_number,
        player_idx=player_idx,
        sequence=sequence,
        balances=balances,
        log=log
    )


def load_resume_csv(path: Path) -> ResumeState:
    """Read a resume log CSV from disk."""
    with open(path, 'r', encoding='utf-8-sig') as f:
        return parse_resume_csv(f.read())
