"""
Player registration for the 16-slot bracket.
"""
from typing import List

from knockout.models import BYE_NAME, Player, TournamentState


MAX_PLAYERS = 16
BYE_MARKER = "-"


def parse_player_names(raw_input: str) -> List[str]:
    """
    Split comma-separated input into player names.

    Each segment is trimmed; empty segments are dropped and a lone hyphen
    becomes an empty (bye) name.
    """
    names = []
    for segment in (raw_input or "").split(','):
        name = segment.strip()
        if not name:
            continue
        names.append(BYE_NAME if name == BYE_MARKER else name)
    return names


def register(state: TournamentState, raw_input: str) -> TournamentState:
    """Register one or more players. Out-of-window calls return state unchanged."""
    if not state.registration_open or len(state.players) >= MAX_PLAYERS:
        return state

    names = parse_player_names(raw_input)
    if not names:
        return state

    available_slots = MAX_PLAYERS - len(state.players)
    new_state = state.copy()
    next_id = new_state.next_player_id()
    for name in names[:available_slots]:
        new_state.players.append(Player(id=next_id, name=name))
        next_id += 1
    new_state.reindex()
    return new_state


def reset(state: TournamentState) -> TournamentState:
    """Discard all players and matches and reopen registration."""
    return TournamentState.empty()
