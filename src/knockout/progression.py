"""
Match progression: points, winner confirmation and advancement.

A match is decided in two steps. ``award_point`` records points and reports
when a player reaches the winning threshold; ``confirm_advance`` finalizes the
winner, moves them on and picks the next match to present. Bye matches skip
the first step and are confirmed with their predetermined winner.
"""
from typing import List, Optional, Tuple

from knockout.bracket import (
    FINAL_MATCH_ID,
    SEMIFINAL_ROUND,
    THIRD_PLACE_MATCH_ID,
    classify_bye,
    find_first_playable_match,
)
from knockout.models import Match, TournamentState


POINTS_TO_WIN = 2


def points_leader(match: Match) -> Optional[int]:
    """Seated player who has reached POINTS_TO_WIN in the match, if any."""
    for player in match.seats:
        if player is not None and match.points.get(player.id, 0) >= POINTS_TO_WIN:
            return player.id
    return None


def award_point(state: TournamentState, match_id: int,
                player_id: int) -> Tuple[TournamentState, Optional[int]]:
    """
    Add one point for a player in a match.

    Returns (new_state, pending_winner_id). The pending winner is set when the
    player's tally reaches POINTS_TO_WIN; the match itself is not decided
    until confirm_advance is called. Once someone has reached the threshold
    further points are ignored and that player is reported again.
    """
    match = state.get_match(match_id)
    if match is None or not match.is_playable or match.seated_player(player_id) is None:
        return state, None
    leader = points_leader(match)
    if leader is not None:
        return state, leader

    new_state = state.copy()
    match = new_state.get_match(match_id)
    match.points[player_id] = match.points.get(player_id, 0) + 1

    pending_winner = player_id if match.points[player_id] >= POINTS_TO_WIN else None
    return new_state, pending_winner


def resolve_advance_winner(state: TournamentState,
                           pending_winner: Optional[int] = None) -> Optional[int]:
    """
    Winner to confirm for the current match when the operator moves on.

    Without an explicit pending winner, a player already at POINTS_TO_WIN is
    used, then the predetermined winner of a bye match.
    """
    if pending_winner is not None:
        return pending_winner
    match = state.get_match(state.current_match_id)
    if match is None or match.winner is not None:
        return None
    leader = points_leader(match)
    if leader is not None:
        return leader
    if match.is_bye_match:
        return match.bye_winner_id
    return None


def select_current_match(matches: List[Match]) -> Optional[Match]:
    """
    Pick the match to present next.

    The third-place match is played once both semifinals are decided and
    before the final; the final follows once third place has a winner.
    Otherwise the lowest-id playable match is chosen.
    """
    by_id = {m.id: m for m in matches}
    third_place = by_id.get(THIRD_PLACE_MATCH_ID)
    semifinals = [m for m in matches if m.round == SEMIFINAL_ROUND]
    semifinals_decided = all(m.winner is not None for m in semifinals)

    if third_place is not None and semifinals_decided and third_place.is_playable:
        return third_place
    if third_place is not None and third_place.winner is not None:
        final = by_id.get(FINAL_MATCH_ID)
        if final is not None and final.is_playable:
            return final
        return None
    return find_first_playable_match(matches)


def confirm_advance(state: TournamentState, match_id: int,
                    winner_id: Optional[int]) -> TournamentState:
    """
    Finalize a match and propagate its result through the bracket.

    Replays against a decided match, matches still waiting for a player,
    unknown matches and winners who are not seated in the match are ignored.
    """
    match = state.get_match(match_id)
    if match is None or winner_id is None or not match.is_playable:
        return state
    if match.seated_player(winner_id) is None:
        return state

    new_state = state.copy()
    match = new_state.get_match(match_id)
    match.winner = winner_id
    winning_player = match.seated_player(winner_id)
    losing_player = match.opponent_of(winner_id)

    if match.next_match_id is not None:
        next_match = new_state.get_match(match.next_match_id)
        if next_match is not None and next_match.seat(winning_player):
            classify_bye(next_match)

    if match.round == SEMIFINAL_ROUND and losing_player is not None and not losing_player.is_bye:
        third_place = new_state.get_match(THIRD_PLACE_MATCH_ID)
        if third_place is not None:
            third_place.seat(losing_player)

    next_up = select_current_match(new_state.matches)
    new_state.current_match_id = next_up.id if next_up else None
    return new_state
