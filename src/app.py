"""
Flask web application hosting the tournament relay.

Clients push snapshots (or actions) over HTTP and receive every change over a
Server-Sent Events stream. The relay keeps only the latest state in memory.
"""
import os
import json
import queue
import logging
import yaml
from flask import Flask, request, jsonify, Response, stream_with_context, abort
from flask_cors import CORS
from knockout.models import InvalidStateError
from knockout.registration import register, reset
from knockout.bracket import start_tournament
from knockout.progression import award_point, confirm_advance, resolve_advance_winner
from knockout.relay import TournamentRelay, tournament_message
from knockout.standings import is_complete, is_current_match_bye, standings_summary

app = Flask(__name__)
# Browser clients are served from a different origin than the relay
CORS(app)

DEFAULT_SETTINGS = {
    'host': '0.0.0.0',
    'port': 8080,
    'heartbeat_seconds': 15,
    'log_level': 'INFO',
}

ENV_OVERRIDES = {
    'host': 'KNOCKOUT_HOST',
    'port': 'KNOCKOUT_PORT',
    'heartbeat_seconds': 'KNOCKOUT_HEARTBEAT_SECONDS',
    'log_level': 'KNOCKOUT_LOG_LEVEL',
}


def load_settings(config_path=None) -> dict:
    """Load settings from an optional YAML file, then apply environment overrides."""
    settings = dict(DEFAULT_SETTINGS)
    config_path = config_path or os.environ.get('KNOCKOUT_CONFIG')
    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
            if isinstance(data, dict):
                settings.update({k: v for k, v in data.items() if k in DEFAULT_SETTINGS})
            elif data is not None:
                app.logger.warning(f'Ignoring {config_path}: expected a mapping')
        except (OSError, yaml.YAMLError) as e:
            app.logger.warning(f'Failed to parse {config_path}: {e}')

    for key, env_name in ENV_OVERRIDES.items():
        if os.environ.get(env_name):
            settings[key] = os.environ[env_name]

    for key in ('port', 'heartbeat_seconds'):
        try:
            settings[key] = int(settings[key])
        except (TypeError, ValueError):
            app.logger.warning(f'Invalid {key} {settings[key]!r}, using {DEFAULT_SETTINGS[key]}')
            settings[key] = DEFAULT_SETTINGS[key]
    if settings['heartbeat_seconds'] <= 0:
        app.logger.warning(f'Invalid heartbeat_seconds {settings["heartbeat_seconds"]!r}, '
                           f'using {DEFAULT_SETTINGS["heartbeat_seconds"]}')
        settings['heartbeat_seconds'] = DEFAULT_SETTINGS['heartbeat_seconds']
    settings['log_level'] = str(settings['log_level']).upper()
    return settings


SETTINGS = load_settings()
HEARTBEAT_SECONDS = SETTINGS['heartbeat_seconds']

relay = TournamentRelay()


def _state_response(state, **extra):
    """JSON envelope for a snapshot plus the values the UI derives from it."""
    payload = tournament_message(state)
    payload['derived'] = {
        'complete': is_complete(state),
        'currentMatchIsBye': is_current_match_bye(state),
        'standings': standings_summary(state),
    }
    payload.update(extra)
    return jsonify(payload)


def _require_int(data: dict, key: str) -> int:
    value = data.get(key)
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidStateError(f"'{key}' must be an integer")
    return value


def format_sse(message: dict) -> str:
    """Encode a relay envelope as one Server-Sent Events frame."""
    return f"event: {message['type']}\ndata: {json.dumps(message)}\n\n"


def iter_sse_events(inbox: queue.Queue, heartbeat_seconds: int):
    """Yield SSE frames from a relay subscription, with heartbeats while idle."""
    yield "event: connected\ndata: ok\n\n"
    while True:
        try:
            message = inbox.get(timeout=heartbeat_seconds)
        except queue.Empty:
            yield ": heartbeat\n\n"
            continue
        yield format_sse(message)


@app.errorhandler(InvalidStateError)
def handle_invalid_state(e):
    return jsonify({'error': str(e)}), 400


@app.route('/')
def index():
    """Simple check that the relay is running."""
    return 'Tournament relay is running'


@app.route('/api/tournament')
def api_tournament():
    return _state_response(relay.state, text=relay.text)


@app.route('/api/messages', methods=['POST'])
def api_messages():
    """Accept an 'update' or 'tournament' envelope and broadcast it."""
    message = request.get_json(silent=True)
    broadcast = relay.handle_message(message)
    if broadcast is None:
        return jsonify({'error': f"Unsupported message type: {message.get('type')!r}"}), 400
    return jsonify(broadcast)


@app.route('/api/actions/<action>', methods=['POST'])
def api_action(action):
    """Run an engine action on the shared state and broadcast the result."""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        raise InvalidStateError('Request body must be a JSON object')

    if action == 'register':
        names = data.get('names')
        if not isinstance(names, str):
            raise InvalidStateError("'names' must be a string")
        state = relay.apply(register, names)
        return _state_response(state)

    if action == 'start':
        return _state_response(relay.apply(start_tournament))

    if action == 'point':
        match_id = _require_int(data, 'matchId')
        player_id = _require_int(data, 'playerId')
        current = relay.state
        state, pending_winner = award_point(current, match_id, player_id)
        if state is not current:
            relay.publish_tournament(state)
        return _state_response(state, pendingWinnerId=pending_winner)

    if action == 'advance':
        if 'matchId' in data:
            match_id = _require_int(data, 'matchId')
            winner_id = _require_int(data, 'winnerId')
        else:
            pending = data.get('pendingWinnerId')
            if pending is not None:
                pending = _require_int(data, 'pendingWinnerId')
            current = relay.state
            match_id = current.current_match_id
            winner_id = resolve_advance_winner(current, pending)
        return _state_response(relay.apply(confirm_advance, match_id, winner_id))

    if action == 'reset':
        if data.get('confirm') is not True:
            return jsonify({'error': 'Reset requires confirmation'}), 400
        app.logger.info('Resetting tournament')
        return _state_response(relay.apply(reset))

    abort(404)


@app.route('/api/live-stream')
def api_live_stream():
    """Server-Sent Events stream of relay broadcasts, starting with the latest state."""
    heartbeat_seconds = HEARTBEAT_SECONDS

    def generate():
        inbox = relay.subscribe()
        try:
            yield from iter_sse_events(inbox, heartbeat_seconds)
        finally:
            relay.unsubscribe(inbox)

    return Response(
        stream_with_context(generate()),
        mimetype='text/event-stream',
        headers={
            'Cache-Control': 'no-cache',
            'X-Accel-Buffering': 'no',
        },
    )


if __name__ == '__main__':
    logging.basicConfig(level=SETTINGS['log_level'])
    app.run(host=SETTINGS['host'], port=SETTINGS['port'], threaded=True)
