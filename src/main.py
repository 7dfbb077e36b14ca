# Entry point for running the tournament relay or a quick bracket walkthrough

import argparse
import logging
import sys

from knockout.models import TournamentState
from knockout.registration import register
from knockout.bracket import get_round_name, start_tournament
from knockout.progression import award_point, confirm_advance, resolve_advance_winner, POINTS_TO_WIN
from knockout.standings import current_match, is_complete, player_display_name, standings


def play_through(state):
    """Play every match in order; the first seated player wins contested matches."""
    while True:
        match = current_match(state)
        if match is None or match.winner is not None:
            return state
        pending = None
        if not match.is_bye_match:
            for _ in range(POINTS_TO_WIN):
                state, pending = award_point(state, match.id, match.player1.id)
        winner_id = resolve_advance_winner(state, pending)
        print(f"  {get_round_name(match.round)} #{match.id}: "
              f"{player_display_name(state, match.player1.id)} vs "
              f"{player_display_name(state, match.player2.id)} -> "
              f"{player_display_name(state, winner_id)}")
        state = confirm_advance(state, match.id, winner_id)


def run_demo(names: str) -> int:
    state = register(TournamentState.empty(), names)
    print(f"Registered {len(state.players)} players")
    state = start_tournament(state)
    state = play_through(state)

    result = standings(state)
    print("\n--- Standings ---")
    for place, player in zip(('1st', '2nd', '3rd'), result):
        print(f"{place}: {player_display_name(state, player.id) if player else 'TBD'}")
    if not is_complete(state):
        print("Tournament did not complete (third place match has no contenders)")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description='Knockout tournament relay')
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve_parser = subparsers.add_parser('serve', help='Run the relay web server')
    serve_parser.add_argument('--host', help='Bind address')
    serve_parser.add_argument('--port', type=int, help='Port to listen on')
    serve_parser.add_argument('--config', help='Path to a YAML settings file')

    demo_parser = subparsers.add_parser('demo', help='Play a bracket from comma-separated names')
    demo_parser.add_argument('names', help='Comma-separated player names ("-" for a bye)')

    args = parser.parse_args(argv)

    if args.command == 'demo':
        return run_demo(args.names)

    import app as app_module
    settings = app_module.load_settings(args.config)
    if args.host:
        settings['host'] = args.host
    if args.port:
        settings['port'] = args.port
    app_module.HEARTBEAT_SECONDS = settings['heartbeat_seconds']
    logging.basicConfig(level=settings['log_level'])
    app_module.app.run(host=settings['host'], port=settings['port'], threaded=True)
    return 0


if __name__ == '__main__':
    sys.exit(main())
