"""
Boundary drawing and rasterization

Turns a freehand pointer path into a closed polygon and burns polygons into
the tile grid:

- inner boundary: tiles whose centre lies inside become obstacles (infield)
- outer boundary: tiles whose centre lies outside become obstacles, then any
  obstacle touching a drivable tile is turned into a barrier (wall ring)
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .grid import TileGrid, TileKind


logger = logging.getLogger(__name__)

Pixel = Tuple[float, float]
Polygon = List[Pixel]

# Minimum pointer travel in pixels before a new path point is recorded
MIN_POINT_DISTANCE = 5.0


def point_in_polygon(px: float, py: float, polygon: Optional[Sequence[Pixel]]) -> bool:
    """
    Ray casting point-in-polygon test

    A horizontal ray is cast from the point; the point is inside when the ray
    crosses an odd number of edges. Edges with zero y-span never count.

    Args:
        px: X coordinate of the point
        py: Y coordinate of the point
        polygon: Polygon vertices (open or closed ring)

    Returns:
        True if the point is inside; False for polygons with < 3 points
    """
    if not polygon or len(polygon) < 3:
        return False

    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > py) != (yj > py):
            x_cross = (xj - xi) * (py - yi) / (yj - yi) + xi
            if px < x_cross:
                inside = not inside
        j = i
    return inside


def points_in_polygon(xs: np.ndarray, ys: np.ndarray, polygon: Optional[Sequence[Pixel]]) -> np.ndarray:
    """
    Vectorized version of point_in_polygon for batch processing

    Args:
        xs: X coordinates (numpy array)
        ys: Y coordinates (numpy array, same shape as xs)
        polygon: Polygon vertices

    Returns:
        Boolean numpy array indicating if each point is inside
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    inside = np.zeros(xs.shape, dtype=bool)
    if not polygon or len(polygon) < 3:
        return inside

    j = len(polygon) - 1
    for i in range(len(polygon)):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        j = i
        if yi == yj:
            continue
        straddles = (ys < yi) != (ys < yj)
        x_cross = (xj - xi) * (ys - yi) / (yj - yi) + xi
        inside ^= straddles & (xs < x_cross)
    return inside


class BoundaryRasterizer:
    """
    Captures boundary paths and applies them to a TileGrid

    Args:
        grid: Grid to mutate
        min_point_distance: Decimation distance for path capture in pixels
    """

    def __init__(self, grid: TileGrid, min_point_distance: float = MIN_POINT_DISTANCE):
        self.grid = grid
        self.min_point_distance = min_point_distance
        self.points: Polygon = []
        self.is_drawing = False
        self.inner_polygon: Optional[Polygon] = None
        self.outer_polygon: Optional[Polygon] = None

    # === PATH CAPTURE ===

    def begin_path(self, px: float, py: float) -> None:
        """Start a new path at a pointer position"""
        logger.debug("begin_path (%.1f, %.1f)", px, py)
        self.points = [(px, py)]
        self.is_drawing = True

    def extend(self, px: float, py: float) -> bool:
        """
        Append a point if it is far enough from the last recorded one

        Returns:
            True if the point was recorded
        """
        if not self.is_drawing:
            return False
        last_x, last_y = self.points[-1]
        if math.hypot(px - last_x, py - last_y) > self.min_point_distance:
            self.points.append((px, py))
            return True
        return False

    def close_path(self) -> Optional[Polygon]:
        """
        Finish the current path

        Returns:
            The closed polygon (first point repeated at the end), or None if
            fewer than 3 points were captured
        """
        self.is_drawing = False
        if len(self.points) < 3:
            logger.debug("close_path rejected: only %d points", len(self.points))
            return None
        self.points.append(self.points[0])
        logger.debug("close_path -> %d vertices", len(self.points))
        return list(self.points)

    def clear_path(self) -> None:
        self.points = []

    # === RASTERIZATION ===

    def _centers_inside(self, polygon: Sequence[Pixel]) -> np.ndarray:
        cx, cy = self.grid.tile_centers()
        return points_in_polygon(cx, cy, polygon)

    def apply_inner(self, polygon: Optional[Sequence[Pixel]]) -> bool:
        """
        Mark every tile whose centre lies inside the polygon as an obstacle

        Returns:
            False if the polygon was degenerate and nothing changed
        """
        if not polygon or len(polygon) < 3:
            return False
        self.inner_polygon = list(polygon)
        inside = self._centers_inside(polygon)
        self.grid.tiles[inside] = TileKind.OBSTACLE
        logger.info("Inner boundary applied: %d tiles enclosed", int(inside.sum()))
        return True

    def apply_outer(self, polygon: Optional[Sequence[Pixel]]) -> bool:
        """
        Mark every tile whose centre lies outside the polygon as an obstacle,
        then build the barrier ring around the remaining track

        Returns:
            False if the polygon was degenerate and nothing changed
        """
        if not polygon or len(polygon) < 3:
            return False
        self.outer_polygon = list(polygon)
        outside = ~self._centers_inside(polygon)
        self.grid.tiles[outside] = TileKind.OBSTACLE
        logger.info("Outer boundary applied: %d tiles excluded", int(outside.sum()))
        self.apply_barrier_edges()
        return True

    def apply_barrier_edges(self) -> int:
        """
        Reclassify obstacles with at least one drivable 8-neighbour as barriers

        Neighbourhoods are evaluated against the grid as it was before this
        pass, so newly created barriers do not affect each other.

        Returns:
            Number of tiles turned into barriers
        """
        tiles = self.grid.tiles
        drivable = np.pad(tiles == TileKind.DRIVABLE, 1, constant_values=False)
        height, width = tiles.shape

        touches_track = np.zeros_like(tiles, dtype=bool)
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                if dx == 0 and dy == 0:
                    continue
                touches_track |= drivable[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]

        barrier = (tiles == TileKind.OBSTACLE) & touches_track
        tiles[barrier] = TileKind.BARRIER
        return int(barrier.sum())

    def reset(self) -> None:
        self.points = []
        self.is_drawing = False
        self.inner_polygon = None
        self.outer_polygon = None


def generate_rounded_rect_points(
    left: float,
    top: float,
    right: float,
    bottom: float,
    corner_radius: float,
    points_per_corner: int = 12
) -> Polygon:
    """
    Generate points along a rectangle with circular corners

    The straight sides run between the corner arcs, so the left edge is
    exactly ``x = left`` from ``top + corner_radius`` to ``bottom - corner_radius``.

    Args:
        left: Left edge in pixels
        top: Top edge in pixels
        right: Right edge in pixels
        bottom: Bottom edge in pixels
        corner_radius: Arc radius (clamped to half the shorter side)
        points_per_corner: Segments per quarter arc

    Returns:
        Closed ring of pixel points, clockwise on screen
    """
    radius = max(0.0, min(corner_radius, (right - left) / 2, (bottom - top) / 2))
    # (arc centre, start angle) per corner, clockwise from top-left; screen y grows down
    corners = [
        (left + radius, top + radius, math.pi),
        (right - radius, top + radius, 1.5 * math.pi),
        (right - radius, bottom - radius, 0.0),
        (left + radius, bottom - radius, 0.5 * math.pi),
    ]

    points = []
    for cx, cy, start in corners:
        for i in range(points_per_corner + 1):
            angle = start + (i / points_per_corner) * (math.pi / 2)
            points.append((cx + math.cos(angle) * radius, cy + math.sin(angle) * radius))
    points.append(points[0])
    return points
