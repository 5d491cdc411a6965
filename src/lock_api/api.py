import random
import time
from dataclasses import asdict
from typing import List

from fastapi import FastAPI, APIRouter, HTTPException
import structlog

from ringlock.difficulty import DIFFICULTIES, get_difficulty
from ringlock.game import Game
from ringlock.state_snapshot import GameSnapshot

from . import models

log = structlog.get_logger(
    processors=[
        structlog.processors.JSONRenderer(indent=2),
    ],
)
log.info("logger initialized")

# Create the FastAPI app
app = FastAPI(title="Ring Lock API")
app.state.game = None

# Create the router for API endpoints
router = APIRouter()


def current_game() -> Game:
    """ Return the hosted game, or fail if none has been started. """
    game = app.state.game
    if game is None:
        raise HTTPException(status_code=409, detail="No game in progress; POST /api/game first")
    return game


def build_state_response(snapshot: GameSnapshot) -> models.GameState:
    """ Build the response model from an immutable game snapshot. """
    return models.GameState(
        **asdict(snapshot),
        rings_remaining=snapshot.rings_remaining,
        keys_used_count=snapshot.keys_used_count,
    )


@router.get("/difficulties", response_model=List[models.DifficultyModel])
def difficulties():
    """ List the difficulty presets. """
    return [models.DifficultyModel(**asdict(d)) for d in DIFFICULTIES]


@router.post("/game", response_model=models.GameState)
def new_game(req: models.NewGameRequest):
    """ Start a fresh game, replacing any game in progress. """
    try:
        difficulty = get_difficulty(req.difficulty)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown difficulty: {req.difficulty}")

    rng = random.Random(req.seed) if req.seed is not None else random.Random()
    game = Game(rng=rng)
    game.start_game(difficulty, now=time.monotonic())
    app.state.game = game

    snapshot = game.snapshot()
    log.info(
        "game started",
        difficulty=difficulty.label,
        seed=req.seed,
        bits=snapshot.bits,
        rings=len(snapshot.rings),
        keys=len(snapshot.keys),
    )
    return build_state_response(snapshot)


@router.get("/game", response_model=models.GameState)
def game_state():
    """ Return the current game state. """
    return build_state_response(current_game().snapshot())


@router.post("/game/select", response_model=models.GameState)
def select_key(req: models.SelectKeyRequest):
    """ Select a key by index. Used or out-of-range keys are ignored. """
    game = current_game()
    game.select_key(req.index)
    return build_state_response(game.snapshot())


@router.post("/game/next", response_model=models.GameState)
def next_key():
    """ Select the next unused key. """
    game = current_game()
    game.next_key()
    return build_state_response(game.snapshot())


@router.post("/game/rotate", response_model=models.GameState)
def rotate(req: models.RotateRequest):
    """ Rotate the selected key one cell left or right. """
    game = current_game()
    if req.direction == "left":
        game.rotate_left()
    else:
        game.rotate_right()
    return build_state_response(game.snapshot())


@router.post("/game/slot", response_model=models.GameState)
def slot():
    """ Slot the selected key into the active ring if it fits. """
    game = current_game()
    result = game.slot()
    snapshot = game.snapshot()

    if result is None:
        log.warning("slot rejected", key_index=snapshot.selected_key, rotation=snapshot.rotation, screen=snapshot.screen)
        return build_state_response(snapshot)

    log.info(
        "key slotted",
        key_index=result.key_index,
        ring_index=result.ring_index,
        rotation=result.rotation,
        pins=result.pins,
        score_added=result.score_added,
    )
    if result.ring_cleared:
        log.info("ring cleared", ring_index=result.ring_index)
    if result.solved:
        log.info("puzzle solved", score=snapshot.score, moves=snapshot.moves, seconds=snapshot.seconds)
    return build_state_response(snapshot)


@router.post("/game/undo", response_model=models.GameState)
def undo():
    """ Undo the most recent slot. Ignored once the puzzle is solved. """
    game = current_game()
    entry = game.undo()
    if entry is not None:
        log.info("undo", key_index=entry.key_index, ring_index=entry.ring_index)
    return build_state_response(game.snapshot())


@router.post("/game/tick", response_model=models.GameState)
def tick():
    """ Advance the game clock to the server's current time. """
    game = current_game()
    game.tick(time.monotonic())
    return build_state_response(game.snapshot())


# Include the router in the app (after all routes are defined)
app.include_router(router, prefix="/api")
