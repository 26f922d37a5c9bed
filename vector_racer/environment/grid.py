"""
Tile grid for the vector racer track

The track is a rectangular field of tiles. Every tile starts drivable and is
reclassified while the players draw the inner and outer boundaries.
Out-of-range coordinates are never stored; every query against them reports
"not drivable" instead of raising.
"""

import logging
from enum import IntEnum
from typing import Iterator, List, Optional, Sequence, Tuple

import numpy as np


logger = logging.getLogger(__name__)


# Defaults used by RaceConfig
GRID_WIDTH = 50
GRID_HEIGHT = 35
TILE_SIZE = 16

# Eight compass directions, clockwise starting north (screen y grows down)
RAY_DIRECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, -1),
    (1, -1),
    (1, 0),
    (1, 1),
    (0, 1),
    (-1, 1),
    (-1, 0),
    (-1, -1),
)


class TileKind(IntEnum):
    """Classification of a single tile"""
    # Open track a car may occupy
    DRIVABLE = 0
    # Wall ring immediately bordering the track
    BARRIER = 1
    # Open infield / exterior not touching the track
    OBSTACLE = 2


class TileGrid:
    """
    2D field of tile classifications

    Tiles are stored in a numpy array indexed ``[y, x]``. Pixel coordinates
    are only used for conversion; the grid itself works in tile units.

    Args:
        width: Number of tile columns
        height: Number of tile rows
        tile_size: Pixels per tile (for coordinate conversion only)
    """

    def __init__(self, width: int = GRID_WIDTH, height: int = GRID_HEIGHT, tile_size: int = TILE_SIZE):
        self.width = width
        self.height = height
        self.tile_size = tile_size
        self.tiles = np.full((height, width), TileKind.DRIVABLE, dtype=np.int8)
        logger.debug("TileGrid created %dx%d (tile_size=%d)", width, height, tile_size)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_drivable(self, x: int, y: int) -> bool:
        """True only for in-range tiles classified DRIVABLE"""
        if not self.in_bounds(x, y):
            return False
        return self.tiles[y, x] == TileKind.DRIVABLE

    def classify(self, x: int, y: int) -> Optional[TileKind]:
        """
        Get the classification of a tile

        Returns:
            The stored TileKind, or None for coordinates outside the grid
        """
        if not self.in_bounds(x, y):
            return None
        return TileKind(int(self.tiles[y, x]))

    def set_classification(self, x: int, y: int, kind: TileKind) -> None:
        """Overwrite a tile's kind; ignored for out-of-range coordinates"""
        if self.in_bounds(x, y):
            self.tiles[y, x] = kind

    def reset_all_drivable(self) -> None:
        """Return the grid to its fully drivable initial state"""
        self.tiles.fill(TileKind.DRIVABLE)

    def pixel_to_tile(self, px: float, py: float) -> Tuple[int, int]:
        """Convert pixel coordinates to tile coordinates (no bounds check)"""
        return (int(px // self.tile_size), int(py // self.tile_size))

    def tile_to_pixel(self, x: int, y: int) -> Tuple[int, int]:
        """Top-left pixel of a tile (no bounds check)"""
        return (x * self.tile_size, y * self.tile_size)

    def tile_center(self, x: int, y: int) -> Tuple[float, float]:
        """Pixel-space centre of a tile"""
        return (x * self.tile_size + self.tile_size / 2, y * self.tile_size + self.tile_size / 2)

    def tile_centers(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Pixel-space centres of every tile as two ``(height, width)`` arrays

        Used for whole-grid vectorized rasterization.
        """
        xs = np.arange(self.width) * self.tile_size + self.tile_size / 2
        ys = np.arange(self.height) * self.tile_size + self.tile_size / 2
        return np.meshgrid(xs, ys)

    def neighbors8(self, x: int, y: int) -> Iterator[Tuple[int, int]]:
        """In-range 8-connected neighbours of a tile"""
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                nx, ny = x + dx, y + dy
                if self.in_bounds(nx, ny):
                    yield (nx, ny)

    def drivable_mask(self) -> np.ndarray:
        """Boolean ``(height, width)`` array, True where drivable"""
        return self.tiles == TileKind.DRIVABLE

    def count(self, kind: TileKind) -> int:
        return int(np.count_nonzero(self.tiles == kind))

    def distances_to_barrier(
        self,
        x: int,
        y: int,
        directions: Sequence[Tuple[int, int]] = RAY_DIRECTIONS,
        max_distance: int = 20,
    ) -> List[int]:
        """
        March along each direction and count drivable tiles before the first
        non-drivable one

        Args:
            x: Start tile X
            y: Start tile Y
            directions: Unit tile steps to march along
            max_distance: Cap for each ray

        Returns:
            Number of drivable steps per direction (0 = blocked immediately)
        """
        distances = []
        for dx, dy in directions:
            steps = 0
            while steps < max_distance and self.is_drivable(x + dx * (steps + 1), y + dy * (steps + 1)):
                steps += 1
            distances.append(steps)
        return distances
