"""
kahootbot CLI - Command-line interface.

Usage:
    kahootbot play <pin> <name> --token T     Play a game yourself
    kahootbot bots <pin> <prefix> --token T   Join auto-answer bots
    kahootbot serve                           Run the control API
"""

import argparse
import logging
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="kahootbot - live quiz client",
        prog="kahootbot",
    )
    parser.add_argument("--debug", action="store_true", help="Log every request and response")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a game interactively")
    play_parser.add_argument("pin", type=int, help="Game PIN")
    play_parser.add_argument("name", help="Nickname")
    _add_token_arguments(play_parser)

    # Bots command
    bots_parser = subparsers.add_parser("bots", help="Join auto-answer bots")
    bots_parser.add_argument("pin", type=int, help="Game PIN")
    bots_parser.add_argument("prefix", help="Bot name prefix")
    bots_parser.add_argument("--count", "-n", type=int, default=1, help="Number of bots")
    _add_token_arguments(bots_parser)

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the control API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "play":
        cmd_play(args)
    elif args.command == "bots":
        cmd_bots(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def _add_token_arguments(subparser):
    subparser.add_argument("--token", required=True, help="Decoded session token for the PIN")
    subparser.add_argument("--team", action="store_true", help="The game is a team game")
    subparser.add_argument("--two-factor", action="store_true", help="The game uses 2FA")


def _resolver(args):
    from .protocol import StaticTokenResolver

    return StaticTokenResolver(
        args.pin,
        args.token,
        is_team_game=args.team,
        is_2fa_game=args.two_factor,
    )


def prompt_answer(question_number, answer_count):
    """Ask the player for an answer on stdin."""
    print(f"Answers for question {question_number}: 0 through {answer_count - 1}")
    return input("Answer: ").strip()


def cmd_play(args):
    """Play a game interactively."""
    from .bots import PromptAnswerPolicy
    from .config import ClientConfig
    from .session import LoopState, PlayMode, SessionManager, SessionStatus

    manager = SessionManager(config=ClientConfig.from_env())
    session = manager.create_session(
        args.pin,
        args.name,
        _resolver(args),
        mode=PlayMode.INTERACTIVE,
        policy=PromptAnswerPolicy(prompt_answer),
        on_cycle=lambda _session, result: _print_cycle(result),
        start=False,
    )

    try:
        session.run()
    except (KeyboardInterrupt, EOFError):
        print("\nLeaving game...")
        if session.loop.state != LoopState.ENDED:
            session.player.disconnect()

    if session.status == SessionStatus.FAILED:
        print(f"Error: could not join game {args.pin}: {session.error}")
        sys.exit(1)

    print("Game over!")


def _print_cycle(result):
    for line in result.messages:
        if line.startswith("Answered question"):
            continue
        print(line)
    for error in result.errors:
        print(f"Error: {error}")


def cmd_bots(args):
    """Join auto-answer bots and wait for the game to end."""
    from .config import ClientConfig
    from .session import SessionManager, SessionStatus

    if args.count < 1:
        print("Error: --count must be at least 1")
        sys.exit(1)

    manager = SessionManager(config=ClientConfig.from_env())
    sessions = manager.create_bots(args.pin, args.prefix, args.count, _resolver(args))
    print(f"Started {len(sessions)} bot(s) in game {args.pin}")

    try:
        for session in sessions:
            session.join()
    except KeyboardInterrupt:
        print("\nStopping bots...")
        for session in sessions:
            session.stop()
        for session in sessions:
            session.join()

    print("\nResults:")
    for session in sessions:
        player = session.player
        if session.status == SessionStatus.FAILED:
            print(f"  {session.username}: failed to join ({session.error})")
            continue
        print(
            f"  {session.username}: {player.total_score()} points, rank {player.rank()}"
            f" ({player.end_reason.value if player.end_reason else 'running'})"
        )


def cmd_serve(args):
    """Run the control API with uvicorn."""
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
