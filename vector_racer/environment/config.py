"""
Race configuration

Constants fixed when an engine is built: grid size, tile size, lap target,
initial velocity and the start line. Start line and post positions default
to the classic layout (line at 10% X / 50% Y, six tiles wide).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .boundary import MIN_POINT_DISTANCE
from .grid import GRID_HEIGHT, GRID_WIDTH, TILE_SIZE


@dataclass(frozen=True)
class RaceConfig:
    """
    Configuration for a RaceEngine

    Attributes:
        grid_width: Number of tile columns
        grid_height: Number of tile rows
        tile_size: Pixels per tile
        laps_to_win: Laps a car needs to win the race
        initial_velocity: Velocity (vx, vy) both cars start with
        start_line_x: Leftmost tile of the start line (default 10% of width)
        start_line_y: Row of the start line (default 50% of height)
        start_line_width: Start line span in tiles
        min_point_distance: Path decimation distance in pixels
        max_auto_skips: Cap on consecutive skipped turns in one turn change
        player_colors: Display colours for the two cars
    """
    grid_width: int = GRID_WIDTH
    grid_height: int = GRID_HEIGHT
    tile_size: int = TILE_SIZE
    laps_to_win: int = 1
    initial_velocity: Tuple[int, int] = (0, -2)
    start_line_x: Optional[int] = None
    start_line_y: Optional[int] = None
    start_line_width: int = 6
    min_point_distance: float = MIN_POINT_DISTANCE
    max_auto_skips: int = 2
    player_colors: Tuple[str, str] = field(default=("#8E24AA", "#1E88E5"))

    def __post_init__(self) -> None:
        # Fill derived defaults on the frozen instance
        if self.start_line_x is None:
            object.__setattr__(self, "start_line_x", int(self.grid_width * 0.1))
        if self.start_line_y is None:
            object.__setattr__(self, "start_line_y", int(self.grid_height * 0.5))
        object.__setattr__(self, "initial_velocity", tuple(self.initial_velocity))
        object.__setattr__(self, "player_colors", tuple(self.player_colors))
        self.validate()

    def validate(self) -> None:
        """Raise ValueError for configurations no race can be played on"""
        if self.grid_width <= 0 or self.grid_height <= 0:
            raise ValueError(f"Grid size must be positive, got {self.grid_width}x{self.grid_height}")
        if self.tile_size <= 0:
            raise ValueError(f"tile_size must be positive, got {self.tile_size}")
        if self.laps_to_win < 1:
            raise ValueError(f"laps_to_win must be at least 1, got {self.laps_to_win}")
        if self.start_line_width < 5:
            # Cars sit at offsets 2 and 4 on the line
            raise ValueError(f"start_line_width must be at least 5, got {self.start_line_width}")
        if not (0 <= self.start_line_y < self.grid_height):
            raise ValueError(f"start_line_y {self.start_line_y} is outside the grid")
        if self.start_line_x < 1 or self.start_line_end_x >= self.grid_width:
            # Both posts flank the line and must be on the grid
            raise ValueError(
                f"Start line {self.start_line_x}..{self.start_line_end_x - 1} leaves a post off the grid"
            )
        if len(self.initial_velocity) != 2 or len(self.player_colors) != 2:
            raise ValueError("initial_velocity and player_colors must have two entries")

    @property
    def start_line_end_x(self) -> int:
        """First tile X past the start line (exclusive bound)"""
        return self.start_line_x + self.start_line_width

    @property
    def start_positions(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """Starting tiles for both cars, side by side on the start line"""
        return (
            (self.start_line_x + 2, self.start_line_y),
            (self.start_line_x + 4, self.start_line_y),
        )

    @property
    def left_post(self) -> Tuple[int, int]:
        """Tile that must be pressed to start drawing the outer boundary"""
        return (self.start_line_x - 1, self.start_line_y)

    @property
    def right_post(self) -> Tuple[int, int]:
        """Tile that must be pressed to start drawing the inner boundary"""
        return (self.start_line_end_x, self.start_line_y)

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (self.grid_width * self.tile_size, self.grid_height * self.tile_size)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return {
            "grid_width": self.grid_width,
            "grid_height": self.grid_height,
            "tile_size": self.tile_size,
            "laps_to_win": self.laps_to_win,
            "initial_velocity": list(self.initial_velocity),
            "start_line_x": self.start_line_x,
            "start_line_y": self.start_line_y,
            "start_line_width": self.start_line_width,
            "min_point_distance": self.min_point_distance,
            "max_auto_skips": self.max_auto_skips,
            "player_colors": list(self.player_colors),
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "RaceConfig":
        """Create config from dictionary"""
        return cls(**{k: v for k, v in config_dict.items() if k in cls.__dataclass_fields__})


default_race_config = RaceConfig()
