"""
Vector Racer Environment Package
Contains the grid, boundary drawing, cars, race engine and Gym-compatible environment
"""

from .grid import (
    TileKind,
    TileGrid,
    GRID_WIDTH,
    GRID_HEIGHT,
    TILE_SIZE,
)
from .boundary import (
    BoundaryRasterizer,
    point_in_polygon,
    points_in_polygon,
    generate_rounded_rect_points,
)
from .config import RaceConfig, default_race_config
from .vehicle import (
    ACCELERATIONS,
    CandidateMove,
    MoveRecord,
    Vehicle,
    create_vehicle,
    action_to_target,
)
from .engine import GamePhase, RaceEngine, RaceSnapshot, VehicleSnapshot
from .track import (
    OvalLayout,
    create_oval_layout,
    create_oval_engine,
    get_track_progress_angle,
)
from .render import render_ansi, render_rgb_array
from .opponents import greedy_opponent, random_opponent
from .racing_env import VectorRacerEnv

__all__ = [
    # Grid
    "TileKind",
    "TileGrid",
    "GRID_WIDTH",
    "GRID_HEIGHT",
    "TILE_SIZE",
    # Boundaries
    "BoundaryRasterizer",
    "point_in_polygon",
    "points_in_polygon",
    "generate_rounded_rect_points",
    # Config
    "RaceConfig",
    "default_race_config",
    # Cars
    "ACCELERATIONS",
    "CandidateMove",
    "MoveRecord",
    "Vehicle",
    "create_vehicle",
    "action_to_target",
    # Engine
    "GamePhase",
    "RaceEngine",
    "RaceSnapshot",
    "VehicleSnapshot",
    # Tracks
    "OvalLayout",
    "create_oval_layout",
    "create_oval_engine",
    "get_track_progress_angle",
    # Presentation
    "render_ansi",
    "render_rgb_array",
    # Opponents
    "greedy_opponent",
    "random_opponent",
    # Environment
    "VectorRacerEnv",
]
