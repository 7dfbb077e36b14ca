"""
Process-wide broadcast relay for tournament snapshots.

The relay holds the latest submitted TournamentState (and the free-form
text banner) and fans every new value out to all subscribers, the sender
included. There is no version check or merge: whichever submission arrives
last replaces the shared state for everyone.
"""
import logging
import queue
import threading
from typing import Callable, Dict, Optional

from knockout.models import InvalidStateError, TournamentState


logger = logging.getLogger(__name__)

MESSAGE_TYPE_UPDATE = 'update'
MESSAGE_TYPE_TOURNAMENT = 'tournament'


def tournament_message(state: TournamentState) -> Dict:
    return {'type': MESSAGE_TYPE_TOURNAMENT, 'tournament': state.to_dict()}


def text_message(text: str) -> Dict:
    return {'type': MESSAGE_TYPE_UPDATE, 'text': text}


def _is_reset(state: TournamentState) -> bool:
    return state.registration_open and not state.players and not state.matches


class TournamentRelay:
    def __init__(self, state: Optional[TournamentState] = None, text: str = ""):
        self._lock = threading.Lock()
        self._state = state if state is not None else TournamentState.empty()
        self._text = text
        self._subscribers = []

    @property
    def state(self) -> TournamentState:
        with self._lock:
            return self._state

    @property
    def text(self) -> str:
        with self._lock:
            return self._text

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(self) -> queue.Queue:
        """Register a listener, pre-loaded with the latest text and tournament."""
        inbox = queue.Queue()
        with self._lock:
            inbox.put(text_message(self._text))
            inbox.put(tournament_message(self._state))
            self._subscribers.append(inbox)
        return inbox

    def unsubscribe(self, inbox: queue.Queue):
        with self._lock:
            if inbox in self._subscribers:
                self._subscribers.remove(inbox)

    def _broadcast(self, message: Dict):
        with self._lock:
            targets = list(self._subscribers)
        for inbox in targets:
            inbox.put(message)

    def publish_text(self, text: str) -> str:
        with self._lock:
            self._text = text
        self._broadcast(text_message(text))
        logger.info(f"Updated text: {text}")
        return text

    def publish_tournament(self, state: TournamentState) -> TournamentState:
        """Replace the shared tournament unconditionally and broadcast it."""
        self._log_snapshot(state)
        with self._lock:
            self._state = state
        self._broadcast(tournament_message(state))
        logger.info(f"Updated tournament: {len(state.players)} players, {len(state.matches)} matches")
        return state

    def apply(self, operation: Callable, *args) -> TournamentState:
        """
        Run an engine operation against the current snapshot and publish the
        result. The read and the write are not atomic together; a concurrent
        submission in between is simply overwritten.
        """
        current = self.state
        new_state = operation(current, *args)
        if new_state is current:
            return current
        return self.publish_tournament(new_state)

    def handle_message(self, message) -> Optional[Dict]:
        """
        Apply an inbound envelope. Returns the broadcast envelope, or None for
        message types the relay does not handle.
        """
        if not isinstance(message, dict):
            raise InvalidStateError("Message must be a JSON object")

        message_type = message.get('type')
        if message_type == MESSAGE_TYPE_UPDATE:
            text = message.get('text', '')
            if not isinstance(text, str):
                raise InvalidStateError("'text' must be a string")
            self.publish_text(text)
            return text_message(text)

        if message_type == MESSAGE_TYPE_TOURNAMENT:
            if message.get('tournament') is None:
                raise InvalidStateError("Missing 'tournament' payload")
            state = TournamentState.from_dict(message['tournament'])
            self.publish_tournament(state)
            return tournament_message(state)

        logger.debug(f"Ignoring message of type {message_type!r}")
        return None

    def _log_snapshot(self, state: TournamentState):
        if _is_reset(state):
            logger.info("Tournament reset detected")
        for match in state.matches:
            if match.points:
                logger.info(f"Match #{match.id} points: {match.points}")
            if match.is_third_place:
                logger.info(f"Third place match: ID={match.id}, Players: {match.player1} vs "
                            f"{match.player2}, Winner: {match.winner}")
            if match.is_bye_match:
                logger.info(f"Bye match detected: ID={match.id}, ByeWinnerId: {match.bye_winner_id}")
