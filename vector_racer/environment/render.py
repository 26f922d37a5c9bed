"""
Headless renderers for a RaceEngine

Text and RGB-array views of the grid, the start line, candidate moves and
both cars. A browser or desktop front end would draw from the same
RaceSnapshot; these are used by the Gymnasium environment and the CLI tools.
"""

from typing import Tuple

import numpy as np

from .engine import GamePhase, RaceEngine
from .grid import TileKind


# ANSI characters per tile kind
TILE_CHARS = {
    TileKind.DRIVABLE: ".",
    TileKind.BARRIER: "#",
    TileKind.OBSTACLE: "~",
}

# RGB palette
TRACK_COLOR = (232, 224, 213)
GRASS_COLOR = (124, 179, 66)
TIRES_COLOR = (69, 90, 100)
START_LINE_COLOR = (44, 62, 80)
CRASH_MOVE_COLOR = (231, 76, 60)

TILE_COLORS = {
    TileKind.DRIVABLE: TRACK_COLOR,
    TileKind.BARRIER: TIRES_COLOR,
    TileKind.OBSTACLE: GRASS_COLOR,
}


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """Convert '#RRGGBB' to an (r, g, b) tuple"""
    color = color.lstrip("#")
    return (int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16))


def render_ansi(engine: RaceEngine) -> str:
    """
    Render the race as text

    Legend: '.' track, '#' barrier, '~' infield/exterior, '=' start line,
    'o' clean candidate, 'x' crash candidate, '1'/'2' cars.
    """
    grid = engine.grid
    rows = [[TILE_CHARS[TileKind(int(kind))] for kind in row] for row in grid.tiles]

    line_y = engine.config.start_line_y
    for x in range(engine.config.start_line_x, engine.config.start_line_end_x):
        if rows[line_y][x] == ".":
            rows[line_y][x] = "="

    for move in engine.candidate_moves:
        rows[move.y][move.x] = "x" if move.is_off_track else "o"

    for car in engine.vehicles:
        if grid.in_bounds(car.x, car.y):
            rows[car.y][car.x] = str(car.id)

    active = engine.active_vehicle
    lines = [
        f"Phase: {engine.phase.value}",
        f"Player: {active.id}  Position: {active.position}  Velocity: {active.velocity}",
        "Laps: " + "  ".join(f"P{car.id}={car.laps}/{engine.config.laps_to_win}" for car in engine.vehicles),
    ]
    if engine.phase == GamePhase.FINISHED and engine.winner is not None:
        lines.append(f"Winner: Player {engine.winner.id}")
    lines.extend("".join(row) for row in rows)
    return "\n".join(lines)


def render_rgb_array(engine: RaceEngine, scale: int = 4) -> np.ndarray:
    """
    Render the race as an RGB image

    Args:
        engine: Engine to draw
        scale: Pixels per tile in the output image

    Returns:
        RGB image array (height, width, 3)
    """
    grid = engine.grid
    palette = np.zeros((len(TileKind), 3), dtype=np.uint8)
    for kind, color in TILE_COLORS.items():
        palette[int(kind)] = color

    tile_img = palette[grid.tiles.astype(np.intp)]

    line_y = engine.config.start_line_y
    for x in range(engine.config.start_line_x, engine.config.start_line_end_x):
        tile_img[line_y, x] = START_LINE_COLOR if x % 2 == 0 else TRACK_COLOR

    if engine.phase == GamePhase.RACING:
        active_color = hex_to_rgb(engine.active_vehicle.color)
        for move in engine.candidate_moves:
            tile_img[move.y, move.x] = CRASH_MOVE_COLOR if move.is_off_track else active_color

    for car in engine.vehicles:
        if grid.in_bounds(car.x, car.y):
            tile_img[car.y, car.x] = hex_to_rgb(car.color)

    return np.repeat(np.repeat(tile_img, scale, axis=0), scale, axis=1)
