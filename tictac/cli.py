"""
TicTac CLI - Command-line interface for the engine.

Usage:
    tictac play [--mode ai|hotseat] [--difficulty hard]   Play in the terminal
    tictac serve [--host 127.0.0.1] [--port 8000]          Run the REST API
    tictac agent "XX......." [--mark O] [--difficulty hard] Ask the agent for a move
"""

import argparse
import asyncio
import logging
import random
import sys

from .config import Settings, configure_logging

logger = logging.getLogger(__name__)


CELL_CHARS = {"x": 1, "o": 2, ".": 0, "-": 0, "_": 0, " ": 0, "0": 0, "1": 1, "2": 2}


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="TicTac - Ledger-adjudicated tic-tac-toe engine",
        prog="tictac",
    )
    parser.add_argument("--log-level", help="Logging level (default from TICTAC_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a local game in the terminal")
    play_parser.add_argument("--mode", choices=["ai", "hotseat"], default="ai")
    play_parser.add_argument("--difficulty", choices=["easy", "medium", "hard"], default=None)
    play_parser.add_argument("--seed", type=int, default=None, help="Seed for the agent")
    play_parser.add_argument("--resume", action="store_true", help="Resume the stored game")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    # Agent command
    agent_parser = subparsers.add_parser("agent", help="Ask the agent for a move")
    agent_parser.add_argument("board", help='9 cells, e.g. "XX.O....." (X, O, . or 0/1/2)')
    agent_parser.add_argument("--mark", choices=["X", "O"], default="O")
    agent_parser.add_argument("--difficulty", choices=["easy", "medium", "hard"], default="hard")
    agent_parser.add_argument("--seed", type=int, default=None)

    args = parser.parse_args()

    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "play":
        cmd_play(args, settings)
    elif args.command == "serve":
        cmd_serve(args, settings)
    elif args.command == "agent":
        cmd_agent(args)
    else:
        parser.print_help()
        sys.exit(1)


def parse_board(text: str) -> tuple:
    """Parse a 9-character board string into mark values."""
    from .engine_core.board import make_board

    cells = text.replace(",", "").replace("|", "")
    if len(cells) != 9:
        raise ValueError(f"Board must have 9 cells, got {len(cells)}")
    try:
        return make_board(CELL_CHARS[c.lower()] for c in cells)
    except KeyError as e:
        raise ValueError(f"Unknown cell {e.args[0]!r}")


def cmd_agent(args):
    """Print the agent's move for a board."""
    from .bots import AdversarialAgent
    from .engine_core.board import Mark, empty_positions, render

    try:
        board = parse_board(args.board)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if not empty_positions(board):
        print("Error: Board is full")
        sys.exit(1)

    rng = random.Random(args.seed) if args.seed is not None else None
    agent = AdversarialAgent(args.difficulty, mark=Mark[args.mark], rng=rng)
    decision = agent.decide(board)

    print(render(board))
    print()
    print(f"Move: {decision.position} ({decision.rule.value})")
    if decision.explanation:
        print(decision.explanation)


def cmd_serve(args, settings: Settings):
    """Run the REST API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn not installed. Install with: pip install uvicorn")
        sys.exit(1)

    from .api import create_app

    app = create_app(settings=settings)
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


def cmd_play(args, settings: Settings):
    """Interactive local game."""
    try:
        asyncio.run(_play(args, settings))
    except (KeyboardInterrupt, EOFError):
        print("\nBye!")


async def _play(args, settings: Settings):
    from .engine_core.board import render
    from .errors import MoveValidationError, SessionBusyError
    from .session import SessionManager
    from .storage import FileStore

    rng = random.Random(args.seed) if args.seed is not None else None
    manager = SessionManager(store=FileStore(settings.data_dir), settings=settings, rng=rng)

    session = await manager.resume_local() if args.resume else None
    if session is None:
        session = await manager.create_session(args.mode, args.difficulty)
    print(f"Session {session.session_id} ({session.mode.value})")

    try:
        while True:
            session = manager.current_session()
            print()
            print(render(session.board))
            print(manager.current_status_message())
            if session.is_over:
                break

            raw = input("Cell (0-8, q to quit): ").strip().lower()
            if raw in ("q", "quit", "exit"):
                print("Game saved. Resume with: tictac play --resume")
                break
            try:
                position = int(raw)
            except ValueError:
                print("Enter a number from 0 to 8")
                continue

            try:
                turn = await manager.submit_move(position)
            except (MoveValidationError, SessionBusyError) as e:
                print(f"Invalid move: {e}")
                continue

            if turn.agent_move is not None:
                print(f"AI played {turn.agent_move}")
    finally:
        manager.close()


if __name__ == "__main__":
    main()
