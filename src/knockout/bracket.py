"""
Bracket construction for the fixed 16-player single elimination format.

Layout (match ids):
    Round 1:  1-8   (pairs feed 9-12)
    Round 2:  9-12  (pairs feed 13-14)
    Round 3:  13-14 (semifinals, winners feed 15, losers feed 16)
    Round 4:  15 (final), 16 (third place)
"""
from typing import List, Optional

from knockout.models import Match, Player, TournamentState
from knockout.registration import MAX_PLAYERS


BRACKET_SIZE = MAX_PLAYERS
FIRST_ROUND_MATCHES = BRACKET_SIZE // 2
SECOND_ROUND_FIRST_ID = 9
SEMIFINAL_FIRST_ID = 13
SEMIFINAL_ROUND = 3
FINAL_ROUND = 4
FINAL_MATCH_ID = 15
THIRD_PLACE_MATCH_ID = 16


def get_round_name(round_number: int) -> str:
    """Get the display name of a round."""
    if round_number == 1:
        return "Round of 16"
    elif round_number == 2:
        return "Quarterfinal"
    elif round_number == SEMIFINAL_ROUND:
        return "Semifinal"
    elif round_number == FINAL_ROUND:
        return "Final"
    return f"Round {round_number}"


def pad_with_byes(players: List[Player]) -> List[Player]:
    """Return the roster padded to the bracket size with empty-name players."""
    padded = list(players)
    next_id = max((p.id for p in players), default=0) + 1
    while len(padded) < BRACKET_SIZE:
        padded.append(Player(id=next_id))
        next_id += 1
    return padded


def classify_bye(match: Match) -> Match:
    """
    Flag a match as a bye when exactly one seat holds a real player and the
    other holds a bye. Half-filled matches are left alone until the second
    arrival is known.
    """
    if not match.is_full:
        return match
    real = [p for p in match.seats if not p.is_bye]
    if len(real) == 1:
        match.is_bye_match = True
        match.bye_winner_id = real[0].id
    return match


def build_matches(players: List[Player]) -> List[Match]:
    """Lay out the full bracket for exactly BRACKET_SIZE players."""
    matches = []

    for i in range(FIRST_ROUND_MATCHES):
        matches.append(Match(
            id=i + 1,
            round=1,
            player1=players[i * 2],
            player2=players[i * 2 + 1],
            next_match_id=i // 2 + SECOND_ROUND_FIRST_ID,
        ))

    for i in range(4):
        matches.append(Match(
            id=i + SECOND_ROUND_FIRST_ID,
            round=2,
            next_match_id=i // 2 + SEMIFINAL_FIRST_ID,
        ))

    matches.append(Match(id=13, round=SEMIFINAL_ROUND, next_match_id=FINAL_MATCH_ID))
    matches.append(Match(id=14, round=SEMIFINAL_ROUND, next_match_id=FINAL_MATCH_ID))

    # Semifinal losers are seated here by the progression engine, not via next_match_id
    matches.append(Match(id=THIRD_PLACE_MATCH_ID, round=FINAL_ROUND, is_third_place=True))
    matches.append(Match(id=FINAL_MATCH_ID, round=FINAL_ROUND))

    for match in matches:
        if match.round == 1:
            classify_bye(match)
    return matches


def find_first_playable_match(matches: List[Match]) -> Optional[Match]:
    """Lowest-id match with both seats filled and no winner. Bye matches count."""
    playable = [m for m in matches if m.is_playable]
    if not playable:
        return None
    return min(playable, key=lambda m: m.id)


def start_tournament(state: TournamentState) -> TournamentState:
    """Close registration and build the bracket, padding with byes as needed."""
    if not state.registration_open:
        return state

    new_state = state.copy()
    new_state.players = pad_with_byes(new_state.players)
    new_state.matches = build_matches(new_state.players)
    new_state.registration_open = False

    first_playable = find_first_playable_match(new_state.matches)
    new_state.current_match_id = first_playable.id if first_playable else 1
    new_state.reindex()
    return new_state
