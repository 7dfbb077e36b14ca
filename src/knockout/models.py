"""
Entity model for a 16-slot knockout tournament.

Snapshots are treated as values: engine operations copy a state, change the
copy and hand it back. The wire form uses the camelCase keys the browser
clients send and expect.
"""
import copy
from typing import Dict, List, Optional


BYE_NAME = ""


class InvalidStateError(ValueError):
    """Raised when a payload cannot be decoded into a TournamentState."""


class Player:
    def __init__(self, id: int, name: str = BYE_NAME):
        self.id = id
        self.name = name

    @property
    def is_bye(self) -> bool:
        return self.name == BYE_NAME

    def to_dict(self) -> Dict:
        return {'id': self.id, 'name': self.name}

    @classmethod
    def from_dict(cls, data) -> 'Player':
        if not isinstance(data, dict) or not isinstance(data.get('id'), int):
            raise InvalidStateError(f"Invalid player: {data!r}")
        name = data.get('name', BYE_NAME)
        if not isinstance(name, str):
            raise InvalidStateError(f"Invalid player name: {name!r}")
        return cls(id=data['id'], name=name)

    def __eq__(self, other):
        if not isinstance(other, Player):
            return NotImplemented
        return self.id == other.id and self.name == other.name

    def __repr__(self):
        return f"Player(id={self.id}, name={self.name!r})"


class Match:
    def __init__(self, id: int, round: int, player1: Optional[Player] = None,
                 player2: Optional[Player] = None, winner: Optional[int] = None,
                 next_match_id: Optional[int] = None, is_third_place: bool = False,
                 is_bye_match: bool = False, bye_winner_id: Optional[int] = None,
                 points: Optional[Dict[int, int]] = None):
        self.id = id
        self.round = round
        self.player1 = player1
        self.player2 = player2
        self.winner = winner
        self.next_match_id = next_match_id
        self.is_third_place = is_third_place
        self.is_bye_match = is_bye_match
        self.bye_winner_id = bye_winner_id
        self.points = points if points is not None else {}

    @property
    def seats(self) -> List[Optional[Player]]:
        return [self.player1, self.player2]

    @property
    def is_full(self) -> bool:
        """Both seats are occupied (by real players or byes)."""
        return self.player1 is not None and self.player2 is not None

    @property
    def is_playable(self) -> bool:
        return self.is_full and self.winner is None

    def seated_player(self, player_id: int) -> Optional[Player]:
        for player in self.seats:
            if player is not None and player.id == player_id:
                return player
        return None

    def opponent_of(self, player_id: int) -> Optional[Player]:
        """The other seated player, or None if that seat is empty."""
        if self.player1 is not None and self.player1.id == player_id:
            return self.player2
        if self.player2 is not None and self.player2.id == player_id:
            return self.player1
        return None

    def seat(self, player: Player) -> bool:
        """Place a player into the first empty seat. Returns False if full."""
        if self.player1 is None:
            self.player1 = player
        elif self.player2 is None:
            self.player2 = player
        else:
            return False
        return True

    def to_dict(self) -> Dict:
        data = {'id': self.id, 'round': self.round}
        if self.player1 is not None:
            data['player1'] = self.player1.to_dict()
        if self.player2 is not None:
            data['player2'] = self.player2.to_dict()
        if self.winner is not None:
            data['winner'] = self.winner
        if self.next_match_id is not None:
            data['nextMatchId'] = self.next_match_id
        if self.is_third_place:
            data['isThirdPlace'] = True
        if self.points:
            data['points'] = {str(pid): value for pid, value in self.points.items()}
        if self.is_bye_match:
            data['isByeMatch'] = True
        if self.bye_winner_id is not None:
            data['byeWinnerId'] = self.bye_winner_id
        return data

    @classmethod
    def from_dict(cls, data) -> 'Match':
        if not isinstance(data, dict):
            raise InvalidStateError(f"Invalid match: {data!r}")
        for key in ('id', 'round'):
            if not isinstance(data.get(key), int):
                raise InvalidStateError(f"Match field '{key}' must be an integer")
        for key in ('winner', 'nextMatchId', 'byeWinnerId'):
            if data.get(key) is not None and not isinstance(data[key], int):
                raise InvalidStateError(f"Match field '{key}' must be an integer")

        raw_points = data.get('points') or {}
        if not isinstance(raw_points, dict):
            raise InvalidStateError("Match points must be an object")
        points = {}
        for key, value in raw_points.items():
            try:
                points[int(key)] = int(value)
            except (TypeError, ValueError):
                raise InvalidStateError(f"Invalid points entry {key!r}: {value!r}")

        player1 = data.get('player1')
        player2 = data.get('player2')
        return cls(
            id=data['id'],
            round=data['round'],
            player1=Player.from_dict(player1) if player1 is not None else None,
            player2=Player.from_dict(player2) if player2 is not None else None,
            winner=data.get('winner'),
            next_match_id=data.get('nextMatchId'),
            is_third_place=bool(data.get('isThirdPlace', False)),
            is_bye_match=bool(data.get('isByeMatch', False)),
            bye_winner_id=data.get('byeWinnerId'),
            points=points,
        )

    def __eq__(self, other):
        if not isinstance(other, Match):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round}, player1={self.player1}, "
                f"player2={self.player2}, winner={self.winner})")


class TournamentState:
    """One snapshot of the shared tournament.

    ``players`` and ``matches`` keep their ordered list form for display and
    lowest-id tie-breaks; lookups by id go through indexes rebuilt on copy.
    """

    def __init__(self, players: Optional[List[Player]] = None,
                 matches: Optional[List[Match]] = None,
                 registration_open: bool = True,
                 current_match_id: Optional[int] = None):
        self.players = players if players is not None else []
        self.matches = matches if matches is not None else []
        self.registration_open = registration_open
        self.current_match_id = current_match_id
        self.reindex()

    @classmethod
    def empty(cls) -> 'TournamentState':
        return cls(players=[], matches=[], registration_open=True, current_match_id=None)

    def reindex(self):
        self._players_by_id = {p.id: p for p in self.players}
        self._matches_by_id = {m.id: m for m in self.matches}

    def copy(self) -> 'TournamentState':
        clone = TournamentState(
            players=copy.deepcopy(self.players),
            matches=copy.deepcopy(self.matches),
            registration_open=self.registration_open,
            current_match_id=self.current_match_id,
        )
        return clone

    def get_match(self, match_id: Optional[int]) -> Optional[Match]:
        if match_id is None:
            return None
        return self._matches_by_id.get(match_id)

    def get_player(self, player_id: Optional[int]) -> Optional[Player]:
        if player_id is None:
            return None
        return self._players_by_id.get(player_id)

    def next_player_id(self) -> int:
        return max((p.id for p in self.players), default=0) + 1

    def to_dict(self) -> Dict:
        data = {
            'players': [p.to_dict() for p in self.players],
            'matches': [m.to_dict() for m in self.matches],
            'registrationOpen': self.registration_open,
        }
        if self.current_match_id is not None:
            data['currentMatchId'] = self.current_match_id
        return data

    @classmethod
    def from_dict(cls, data) -> 'TournamentState':
        if not isinstance(data, dict):
            raise InvalidStateError("Tournament state must be an object")
        players = data.get('players') or []
        matches = data.get('matches') or []
        if not isinstance(players, list) or not isinstance(matches, list):
            raise InvalidStateError("'players' and 'matches' must be lists")
        current = data.get('currentMatchId')
        if current is not None and not isinstance(current, int):
            raise InvalidStateError("'currentMatchId' must be an integer")
        return cls(
            players=[Player.from_dict(p) for p in players],
            matches=[Match.from_dict(m) for m in matches],
            registration_open=bool(data.get('registrationOpen', True)),
            current_match_id=current,
        )

    def __eq__(self, other):
        if not isinstance(other, TournamentState):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"TournamentState(players={len(self.players)}, matches={len(self.matches)}, "
                f"registration_open={self.registration_open}, "
                f"current_match_id={self.current_match_id})")
