"""
Unit tests for the last-write-wins broadcast relay.
"""
import pytest
import sys
import os
import logging

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockout.models import InvalidStateError, TournamentState
from knockout.registration import register, reset
from knockout.bracket import start_tournament
from knockout.progression import confirm_advance
from knockout.relay import TournamentRelay, text_message, tournament_message


def drain(inbox):
    messages = []
    while not inbox.empty():
        messages.append(inbox.get_nowait())
    return messages


class TestSubscribe:
    """Tests for subscription and re-delivery."""

    def test_new_subscriber_gets_latest_state(self, relay, started_state):
        """Test a new subscriber receives the latest text and tournament."""
        relay.publish_text("hello")
        relay.publish_tournament(started_state)
        inbox = relay.subscribe()
        assert drain(inbox) == [text_message("hello"), tournament_message(started_state)]

    def test_fresh_relay_delivers_empty_state(self, relay):
        """Test a fresh relay delivers the empty tournament."""
        messages = drain(relay.subscribe())
        assert messages[1] == {
            'type': 'tournament',
            'tournament': {'players': [], 'matches': [], 'registrationOpen': True},
        }

    def test_reconnect_gets_current_state(self, relay, full_roster):
        """Test a reconnecting subscriber receives the current state."""
        inbox = relay.subscribe()
        relay.unsubscribe(inbox)
        relay.publish_tournament(full_roster)
        again = relay.subscribe()
        assert drain(again)[-1] == tournament_message(full_roster)

    def test_unsubscribe(self, relay):
        """Test unsubscribing removes the inbox."""
        inbox = relay.subscribe()
        assert relay.subscriber_count == 1
        relay.unsubscribe(inbox)
        relay.unsubscribe(inbox)
        assert relay.subscriber_count == 0


class TestPublish:
    """Tests for broadcast semantics."""

    def test_broadcast_reaches_every_subscriber(self, relay, full_roster):
        """Test a broadcast reaches every subscriber."""
        inboxes = [relay.subscribe() for _ in range(3)]
        for inbox in inboxes:
            drain(inbox)
        relay.publish_tournament(full_roster)
        for inbox in inboxes:
            assert drain(inbox) == [tournament_message(full_roster)]

    def test_unsubscribed_inbox_receives_nothing(self, relay, full_roster):
        """Test a removed inbox receives no broadcasts."""
        inbox = relay.subscribe()
        drain(inbox)
        relay.unsubscribe(inbox)
        relay.publish_tournament(full_roster)
        assert inbox.empty()

    def test_last_write_wins(self, relay, empty_state):
        """Test the latest publish replaces earlier ones."""
        # Two clients compute from the same snapshot; the later submission wins
        base = relay.state
        first = register(base, "Alice")
        second = register(base, "Bob")
        relay.publish_tournament(first)
        relay.publish_tournament(second)
        assert [p.name for p in relay.state.players] == ["Bob"]

    def test_stale_snapshot_overwrites_newer_state(self, relay, started_state):
        """Test an older snapshot still overwrites a newer one."""
        relay.publish_tournament(started_state)
        advanced = confirm_advance(started_state, 1, 1)
        relay.publish_tournament(advanced)
        relay.publish_tournament(started_state)
        assert relay.state.get_match(1).winner is None

    def test_publish_text(self, relay):
        """Test shared text is stored and broadcast."""
        inbox = relay.subscribe()
        drain(inbox)
        relay.publish_text("Round 2 starting")
        assert relay.text == "Round 2 starting"
        assert drain(inbox) == [{'type': 'update', 'text': 'Round 2 starting'}]

    def test_reset_is_logged(self, relay, started_state, caplog):
        """Test publishing an empty tournament logs a reset."""
        with caplog.at_level(logging.INFO, logger='knockout.relay'):
            relay.publish_tournament(reset(started_state))
        assert "Tournament reset detected" in caplog.text

    def test_bye_match_is_logged(self, relay, caplog):
        """Test bye matches are logged when published."""
        state = start_tournament(register(TournamentState.empty(), "A,-"))
        with caplog.at_level(logging.INFO, logger='knockout.relay'):
            relay.publish_tournament(state)
        assert "Bye match detected: ID=1" in caplog.text


class TestApply:
    """Tests for running engine operations on the shared state."""

    def test_apply_publishes_result(self, relay):
        """Test apply publishes the operation result."""
        inbox = relay.subscribe()
        drain(inbox)
        state = relay.apply(register, "Alice,Bob")
        assert relay.state is state
        assert len(drain(inbox)) == 1

    def test_noop_operation_is_not_broadcast(self, relay):
        """Test an operation that changes nothing is not broadcast."""
        relay.apply(register, "Alice")
        relay.apply(start_tournament)
        inbox = relay.subscribe()
        drain(inbox)
        before = relay.state
        assert relay.apply(register, "Late") is before
        assert inbox.empty()


class TestHandleMessage:
    """Tests for inbound envelopes."""

    def test_tournament_message_replaces_state(self, relay, started_state):
        """Test a tournament message replaces the state."""
        result = relay.handle_message(tournament_message(started_state))
        assert result == tournament_message(started_state)
        assert relay.state == started_state

    def test_update_message(self, relay):
        """Test an update message sets the text."""
        assert relay.handle_message({'type': 'update', 'text': 'hi'}) == text_message('hi')
        assert relay.text == 'hi'

    def test_unknown_type_ignored(self, relay):
        """Test an unknown message type returns nothing."""
        assert relay.handle_message({'type': 'chat', 'text': 'x'}) is None

    def test_missing_payload_rejected(self, relay):
        """Test a tournament message without a payload is rejected."""
        with pytest.raises(InvalidStateError):
            relay.handle_message({'type': 'tournament'})

    def test_malformed_payload_leaves_state(self, relay, full_roster):
        """Test a malformed payload leaves the state untouched."""
        relay.publish_tournament(full_roster)
        with pytest.raises(InvalidStateError):
            relay.handle_message({'type': 'tournament', 'tournament': {'players': 'oops'}})
        assert relay.state == full_roster

    def test_non_object_rejected(self, relay):
        """Test a message that is not an object is rejected."""
        with pytest.raises(InvalidStateError):
            relay.handle_message("tournament")

    def test_non_string_text_rejected(self, relay):
        """Test update text must be a string."""
        with pytest.raises(InvalidStateError):
            relay.handle_message({'type': 'update', 'text': 5})
