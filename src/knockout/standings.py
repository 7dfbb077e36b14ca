"""
Completion detection, final standings and read-only helpers for display.
"""
from collections import namedtuple
from typing import List, Optional

from knockout.bracket import FINAL_MATCH_ID, THIRD_PLACE_MATCH_ID
from knockout.models import Match, Player, TournamentState


Standings = namedtuple('Standings', ['first', 'second', 'third'])

TBD_LABEL = "TBD"
UNKNOWN_LABEL = "Unknown"
BYE_LABEL = "Bye"


def is_complete(state: TournamentState) -> bool:
    """True once the bracket exists and every match has a winner.

    A third-place match that never receives two real players keeps this
    False indefinitely.
    """
    return len(state.matches) > 0 and all(m.winner is not None for m in state.matches)


def standings(state: TournamentState) -> Standings:
    """1st/2nd from the final, 3rd from the third-place match; None if undecided."""
    first = second = third = None

    final = state.get_match(FINAL_MATCH_ID)
    if final is not None and final.winner is not None:
        first = final.seated_player(final.winner)
        second = final.opponent_of(final.winner)

    third_place = state.get_match(THIRD_PLACE_MATCH_ID)
    if third_place is not None and third_place.winner is not None:
        third = third_place.seated_player(third_place.winner)

    return Standings(first=first, second=second, third=third)


def get_points(match: Optional[Match], player_id: Optional[int]) -> int:
    if match is None or player_id is None:
        return 0
    return match.points.get(player_id, 0)


def round_matches(state: TournamentState, round_number: int) -> List[Match]:
    return [m for m in state.matches if m.round == round_number]


def current_match(state: TournamentState) -> Optional[Match]:
    return state.get_match(state.current_match_id)


def is_current_match_bye(state: TournamentState) -> bool:
    match = current_match(state)
    return match is not None and match.is_bye_match


def player_display_name(state: TournamentState, player_id: Optional[int]) -> str:
    if player_id is None:
        return TBD_LABEL
    player = state.get_player(player_id)
    if player is None:
        return UNKNOWN_LABEL
    return player.name or BYE_LABEL


def standings_summary(state: TournamentState) -> dict:
    """Standings keyed by place, with display names, for JSON responses."""
    result = standings(state)

    def _entry(player: Optional[Player]):
        if player is None:
            return None
        return {'id': player.id, 'name': player.name or BYE_LABEL}

    return {
        'complete': is_complete(state),
        'first': _entry(result.first),
        'second': _entry(result.second),
        'third': _entry(result.third),
    }
