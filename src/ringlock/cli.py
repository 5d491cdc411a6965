import logging
import random
import time
from typing import Callable, Optional

import click
from rich.console import Console, Group

from ringlock.difficulty import DIFFICULTIES, DIFFICULTY_LABELS, Difficulty, get_difficulty
from ringlock.game import Game
from ringlock.generator import generate_puzzle_with_solution
from ringlock.remote import DEFAULT_API_URL, RemoteGame, RemoteGameError, snapshot_from_state
from ringlock.state_snapshot import GameSnapshot
from ringlock.ui import event_log_handler, key_to_string, render, render_log_panel, render_win, ring_to_string

HELP_TEXT = (
    "[dim]a/left  d/right  s/slot  n/tab next  z/undo  1-9 select  r restart  q quit[/dim]"
)

COMMANDS = {
    "a": "left",
    "left": "left",
    "d": "right",
    "right": "right",
    "s": "slot",
    "slot": "slot",
    "enter": "slot",
    "": "slot",
    "n": "next",
    "tab": "next",
    "next": "next",
    "z": "undo",
    "undo": "undo",
    "r": "restart",
    "restart": "restart",
    "q": "quit",
    "quit": "quit",
}


def parse_command(raw: str) -> Optional[str]:
    """Normalize a typed command, or None when it is not recognized."""
    text = raw.strip().lower()
    if text.isdigit():
        return f"select:{int(text) - 1}"
    return COMMANDS.get(text)


def apply_command(game: Game, command: str, now: float) -> bool:
    """Apply a parsed command to the game. Returns False when the player quits."""
    if command == "quit":
        return False
    if command == "left":
        game.rotate_left()
    elif command == "right":
        game.rotate_right()
    elif command == "slot":
        game.slot()
    elif command == "next":
        game.next_key()
    elif command == "undo":
        game.undo()
    elif command == "restart":
        game.restart(now)
    elif command.startswith("select:"):
        game.select_key(int(command.split(":", 1)[1]))
    return True


def difficulty_option(value: str) -> Difficulty:
    """Resolve a preset label for click, reporting unknown labels as bad parameters."""
    try:
        return get_difficulty(value)
    except KeyError:
        raise click.BadParameter(f"choose one of {', '.join(DIFFICULTY_LABELS)}")


def _difficulty_callback(ctx, param, value):
    return difficulty_option(value)


def configure_logging(verbose: bool) -> None:
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    root.addHandler(event_log_handler())


def draw(console: Console, state: GameSnapshot, log_lines: int) -> None:
    console.clear()
    if state.screen == "win":
        console.print(Group(render(state), render_win(state)))
    else:
        console.print(render(state))
    if log_lines:
        console.print(render_log_panel(log_lines))
    console.print(HELP_TEXT)


def play_loop(
    console: Console,
    read_command: Callable[[], str],
    get_state: Callable[[], GameSnapshot],
    send: Callable[[str], bool],
    log_lines: int = 0,
) -> GameSnapshot:
    """Read, apply and redraw until the player quits, or leaves the win screen."""
    state = get_state()
    while True:
        draw(console, state, log_lines)
        command = parse_command(read_command())
        if state.screen == "win" and command != "restart":
            return state
        if command is None:
            continue
        if not send(command):
            return state
        state = get_state()


@click.group()
def cli():
    pass


@cli.command()
def difficulties():
    """List the difficulty presets."""
    for d in DIFFICULTIES:
        click.echo(f"{d.label:<10} bits={d.bits:<3} rings={d.rings}  keys/ring={d.keys_per_ring}")


@cli.command()
@click.option("--difficulty", "-d", "difficulty", default="Novice", callback=_difficulty_callback)
@click.option("--seed", "-s", type=int, default=None, envvar="RINGLOCK_SEED", help="Seed for a reproducible puzzle")
@click.option("--verbose", "-v", is_flag=True, help="Show debug log lines")
def play(difficulty: Difficulty, seed: Optional[int], verbose: bool):
    """Play a puzzle in the terminal."""
    configure_logging(verbose)
    console = Console()
    game = Game(rng=random.Random(seed))
    game.start_game(difficulty, now=time.monotonic())

    def get_state() -> GameSnapshot:
        game.tick(time.monotonic())
        return game.snapshot()

    def send(command: str) -> bool:
        return apply_command(game, command, time.monotonic())

    try:
        play_loop(console, lambda: console.input("> "), get_state, send, log_lines=5)
    except (KeyboardInterrupt, EOFError):
        pass


@cli.command()
@click.option("--difficulty", "-d", "difficulty", default=None, help="Preset to size the puzzle")
@click.option("--bits", type=click.IntRange(min=2), default=8)
@click.option("--rings", type=click.IntRange(min=1), default=2)
@click.option("--keys-per-ring", type=click.IntRange(min=1), default=2)
@click.option("--seed", "-s", type=int, default=None, envvar="RINGLOCK_SEED")
@click.option("--reveal", is_flag=True, help="Print the hidden ring and rotation for each key")
def generate(difficulty: Optional[str], bits: int, rings: int, keys_per_ring: int, seed: Optional[int], reveal: bool):
    """Generate a puzzle and print it."""
    if difficulty is not None:
        preset = difficulty_option(difficulty)
        bits, rings, keys_per_ring = preset.bits, preset.rings, preset.keys_per_ring

    puzzle, solution = generate_puzzle_with_solution(bits, rings, keys_per_ring, random.Random(seed))
    console = Console()
    for ring_index, ring in enumerate(puzzle.rings):
        console.print(f"ring {ring_index}  {ring_to_string(ring, 'active')}")
    for key_index, key in enumerate(puzzle.keys):
        line = f"key  {key_index + 1:<2} {key_to_string(key)}"
        if reveal:
            ring_index, offset = solution[key_index]
            line += f"  → ring {ring_index} at rotation {offset}"
        console.print(line)


@cli.command("lock-api")
@click.option("--host", default="127.0.0.1", help="Host to bind the server to")
@click.option("--port", default=8000, help="Port to bind the server to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def lock_api(host: str, port: int, reload: bool):
    """Start the lock API server hosting a game over HTTP."""
    import uvicorn
    from lock_api.api import app

    click.echo(f"Starting lock API server on http://{host}:{port}")
    click.echo("Available endpoints:")
    click.echo("  - GET  /api/difficulties - List presets")
    click.echo("  - POST /api/game         - Start a game")
    click.echo("  - GET  /api/game         - Current state")
    click.echo("  - POST /api/game/select|next|rotate|slot|undo|tick")
    click.echo("\nPress Ctrl+C to stop the server")

    if reload:
        # Use import string for reload mode
        uvicorn.run("lock_api.api:app", host=host, port=port, reload=True)
    else:
        uvicorn.run(app, host=host, port=port, reload=False)


@cli.command()
@click.option("--url", default=DEFAULT_API_URL, envvar="RINGLOCK_API_URL", help="Base URL of the lock API")
@click.option("--difficulty", "-d", "difficulty", default="Novice", callback=_difficulty_callback)
@click.option("--seed", "-s", type=int, default=None, envvar="RINGLOCK_SEED")
def remote(url: str, difficulty: Difficulty, seed: Optional[int]):
    """Play a game hosted by a running lock API."""
    client = RemoteGame(url)
    console = Console()

    def get_state() -> GameSnapshot:
        return snapshot_from_state(client.tick())

    def send(command: str) -> bool:
        if command == "quit":
            return False
        if command in ("left", "right"):
            client.rotate(command)
        elif command == "slot":
            client.slot()
        elif command == "next":
            client.next_key()
        elif command == "undo":
            client.undo()
        elif command == "restart":
            client.start(difficulty.label, seed)
        elif command.startswith("select:"):
            client.select(int(command.split(":", 1)[1]))
        return True

    try:
        client.start(difficulty.label, seed)
        play_loop(console, lambda: console.input("> "), get_state, send)
    except RemoteGameError as e:
        click.echo(f"Error: {e}")
        raise click.Abort()
    except (KeyboardInterrupt, EOFError):
        pass


if __name__ == "__main__":
    cli()
