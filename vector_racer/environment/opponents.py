"""
Scripted drivers for the second car

An opponent is any callable ``(engine, rng) -> (x, y)`` returning one of the
active car's candidate tiles.
"""

from typing import Callable, List, Tuple

import numpy as np

from .engine import RaceEngine
from .track import get_track_progress_angle, progress_delta
from .vehicle import CandidateMove, Tile


OpponentPolicy = Callable[[RaceEngine, np.random.Generator], Tile]


def clean_moves(engine: RaceEngine) -> List[CandidateMove]:
    """Candidates the active car reaches without crashing"""
    car = engine.active_vehicle
    return [
        move for move in engine.candidate_moves
        if not move.is_off_track and engine.find_impact_point(car.x, car.y, move.x, move.y) == move.position
    ]


def _has_clean_follow_up(engine: RaceEngine, move: CandidateMove) -> bool:
    # Velocity after the move is the displacement that produced it
    car = engine.active_vehicle
    vx, vy = move.x - car.x, move.y - car.y
    landing_x, landing_y = move.x + vx, move.y + vy
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            tx, ty = landing_x + dx, landing_y + dy
            if engine.grid.is_drivable(tx, ty) and engine.find_impact_point(move.x, move.y, tx, ty) == (tx, ty):
                return True
    return False


def random_opponent(engine: RaceEngine, rng: np.random.Generator) -> Tile:
    """Pick a random clean move, or any candidate if none is clean"""
    options = clean_moves(engine) or engine.candidate_moves
    return options[int(rng.integers(len(options)))].position


def greedy_opponent(engine: RaceEngine, rng: np.random.Generator) -> Tile:
    """
    Take the clean move that gains the most track progress while still
    leaving a clean move for the following turn

    Ties are broken randomly.
    """
    car = engine.active_vehicle
    start_angle = get_track_progress_angle(engine, car.x, car.y)

    scored: List[Tuple[float, CandidateMove]] = []
    for move in clean_moves(engine):
        gain = progress_delta(start_angle, get_track_progress_angle(engine, move.x, move.y))
        if not _has_clean_follow_up(engine, move):
            gain -= 2 * np.pi
        scored.append((gain, move))

    if not scored:
        return random_opponent(engine, rng)

    best = max(score for score, _ in scored)
    best_moves = [move for score, move in scored if score == best]
    return best_moves[int(rng.integers(len(best_moves)))].position


OPPONENTS = {
    "greedy": greedy_opponent,
    "random": random_opponent,
}
