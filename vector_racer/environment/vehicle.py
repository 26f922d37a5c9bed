"""
Vehicle state and movement rules for the vector racer

A car moves in whole tiles. Each turn its velocity carries it to the landing
tile, and the player may adjust that by one tile in any direction (or not at
all), giving nine candidate destinations.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .grid import TileGrid


logger = logging.getLogger(__name__)

Tile = Tuple[int, int]


# Acceleration per discrete action
#   0: none, then clockwise from north: N, NE, E, SE, S, SW, W, NW
ACCELERATIONS: Tuple[Tile, ...] = (
    (0, 0),
    (0, -1),
    (1, -1),
    (1, 0),
    (1, 1),
    (0, 1),
    (-1, 1),
    (-1, 0),
    (-1, -1),
)


@dataclass(frozen=True)
class MoveRecord:
    """One resolved move, for trail rendering and replay"""
    from_pos: Tile
    to_pos: Tile


@dataclass(frozen=True)
class CandidateMove:
    """A legal destination for the active car"""
    x: int
    y: int
    is_off_track: bool

    @property
    def position(self) -> Tile:
        return (self.x, self.y)


@dataclass
class Vehicle:
    """Complete car state"""
    id: int
    color: str
    # Position in tiles
    x: int
    y: int
    # Velocity in tiles per turn
    vx: int = 0
    vy: int = 0
    laps: int = 0
    # Armed latch: set by the first upward start line crossing
    crossed_start: bool = False
    # Set after a crash; the car sits out its next turn
    skip_next_turn: bool = False
    _history: List[MoveRecord] = field(default_factory=list, repr=False)

    @property
    def position(self) -> Tile:
        """Get position as tuple"""
        return (self.x, self.y)

    @property
    def velocity(self) -> Tile:
        """Get velocity as tuple"""
        return (self.vx, self.vy)

    @property
    def history(self) -> Tuple[MoveRecord, ...]:
        """Read-only log of resolved moves, oldest first"""
        return tuple(self._history)

    def landing_tile(self) -> Tile:
        """Where the car ends up if it does not accelerate"""
        return (self.x + self.vx, self.y + self.vy)

    def candidate_moves(self, grid: TileGrid) -> List[CandidateMove]:
        """
        The 3x3 neighbourhood of the landing tile

        Tiles outside the grid are left out entirely; tiles inside it but not
        drivable are kept and flagged off-track.

        Args:
            grid: Grid used for bounds and drivability

        Returns:
            Candidates in row-major order (top row first)
        """
        landing_x, landing_y = self.landing_tile()
        moves = []
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                nx, ny = landing_x + dx, landing_y + dy
                if grid.in_bounds(nx, ny):
                    moves.append(CandidateMove(nx, ny, not grid.is_drivable(nx, ny)))
        return moves

    def apply_move(self, new_x: int, new_y: int) -> None:
        """Record the move and derive the new velocity from the displacement"""
        logger.debug("Car %d moves (%d, %d) -> (%d, %d)", self.id, self.x, self.y, new_x, new_y)
        self._history.append(MoveRecord((self.x, self.y), (new_x, new_y)))
        self.vx = new_x - self.x
        self.vy = new_y - self.y
        self.x = new_x
        self.y = new_y

    def stop(self) -> None:
        self.vx = 0
        self.vy = 0


def create_vehicle(
    vehicle_id: int,
    color: str,
    x: int,
    y: int,
    velocity: Optional[Tile] = None,
) -> Vehicle:
    """
    Create a car at its starting tile

    Args:
        vehicle_id: Player number shown to users (1-based)
        color: Display colour
        x: Start tile X
        y: Start tile Y
        velocity: Initial velocity (defaults to standing still)

    Returns:
        New Vehicle
    """
    vx, vy = velocity or (0, 0)
    return Vehicle(id=vehicle_id, color=color, x=x, y=y, vx=vx, vy=vy)


def action_to_target(vehicle: Vehicle, action: int) -> Tile:
    """
    Convert a discrete action (0-8) into a destination tile

    Unknown actions fall back to no acceleration.
    """
    ax, ay = ACCELERATIONS[action] if 0 <= action < len(ACCELERATIONS) else ACCELERATIONS[0]
    landing_x, landing_y = vehicle.landing_tile()
    return (landing_x + ax, landing_y + ay)
