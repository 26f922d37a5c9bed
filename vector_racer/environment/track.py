"""
Preset track layouts and track progress

Players normally draw their own boundaries. For training, demos and tests a
ready-made oval is built the same way: an inner and an outer rounded
rectangle fed through the boundary rasterizer. The oval is sized from the
race config so the left straight runs exactly between the two posts, which
makes the drivable span of the start row the start line itself.
"""

import math
from dataclasses import dataclass
from typing import Optional

from .boundary import Polygon, generate_rounded_rect_points
from .config import RaceConfig, default_race_config
from .engine import RaceEngine


@dataclass
class OvalLayout:
    """Geometry of a preset oval in pixel space"""
    outer_left: float
    outer_top: float
    outer_right: float
    outer_bottom: float
    inner_left: float
    inner_top: float
    inner_right: float
    inner_bottom: float
    corner_radius: float
    points_per_corner: int = 12

    @property
    def track_width(self) -> float:
        return self.inner_left - self.outer_left

    @property
    def inner_corner_radius(self) -> float:
        return max(self.corner_radius - self.track_width, 0.0)

    @property
    def inner(self) -> Polygon:
        return generate_rounded_rect_points(
            self.inner_left, self.inner_top, self.inner_right, self.inner_bottom,
            self.inner_corner_radius, self.points_per_corner
        )

    @property
    def outer(self) -> Polygon:
        return generate_rounded_rect_points(
            self.outer_left, self.outer_top, self.outer_right, self.outer_bottom,
            self.corner_radius, self.points_per_corner
        )


def create_oval_layout(config: Optional[RaceConfig] = None, points_per_corner: int = 12) -> OvalLayout:
    """
    Fit an oval to the grid around the start line

    The outer edge runs along the left post's right side and the inner edge
    along the right post's left side, so tiles ``start_line_x`` up to
    ``start_line_end_x - 1`` are the only drivable ones on the start row. The
    right straight mirrors the left one. The top and bottom straights are as
    wide and keep a one-tile margin from the canvas. Corners are rounded only as
    far as keeps the start row on the straight.

    Raises:
        ValueError: If the grid is too small to leave an infield
    """
    config = config or default_race_config
    ts = config.tile_size
    canvas_w, canvas_h = config.canvas_size

    outer_left = config.start_line_x * ts
    inner_left = config.start_line_end_x * ts
    width = inner_left - outer_left
    outer_right = canvas_w - outer_left
    inner_right = outer_right - width
    outer_top = ts
    outer_bottom = canvas_h - ts
    inner_top = outer_top + width
    inner_bottom = outer_bottom - width

    if inner_right <= inner_left or inner_bottom <= inner_top:
        raise ValueError(
            f"Grid {config.grid_width}x{config.grid_height} is too small for an oval "
            f"with a {config.start_line_width}-tile track"
        )

    # Start row centre must stay on the straight part of the left edge
    start_cy = (config.start_line_y + 0.5) * ts
    corner = min(width + 2 * ts, start_cy - outer_top - ts / 2, outer_bottom - start_cy - ts / 2)

    return OvalLayout(
        outer_left=outer_left,
        outer_top=outer_top,
        outer_right=outer_right,
        outer_bottom=outer_bottom,
        inner_left=inner_left,
        inner_top=inner_top,
        inner_right=inner_right,
        inner_bottom=inner_bottom,
        corner_radius=max(corner, 0.0),
        points_per_corner=points_per_corner,
    )


def create_oval_engine(config: Optional[RaceConfig] = None) -> RaceEngine:
    """Engine with the preset oval already drawn, ready to race"""
    engine = RaceEngine(config)
    layout = create_oval_layout(engine.config)
    engine.build_track(layout.inner, layout.outer)
    return engine


def get_track_progress_angle(engine: RaceEngine, x: int, y: int) -> float:
    """
    Get progress around the track centre as an angle

    Racing runs up the left straight, so the left side of the grid is 0 and
    the angle grows in the racing direction (clockwise on screen).

    Args:
        engine: Engine providing grid geometry
        x: Tile X
        y: Tile Y

    Returns:
        Angle in radians in [0, 2*PI)
    """
    px, py = engine.grid.tile_center(x, y)
    canvas_w, canvas_h = engine.config.canvas_size
    angle = math.atan2(py - canvas_h / 2, px - canvas_w / 2)
    return (angle - math.pi) % (2 * math.pi)


def progress_delta(old_angle: float, new_angle: float) -> float:
    """Signed change in progress angle, unwrapped across the start"""
    delta = new_angle - old_angle
    if delta < -math.pi:
        delta += 2 * math.pi
    elif delta > math.pi:
        delta -= 2 * math.pi
    return delta
