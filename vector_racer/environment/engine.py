"""
Race engine for the two-player vector racer

Owns the grid, the boundary rasterizer and both cars, and drives the game
through its phases:

    DRAW_INNER -> DRAW_OUTER -> RACING -> FINISHED

Gameplay input is never rejected with an exception. Moves to tiles that are
not candidates, clicks away from the starting posts and degenerate boundary
paths are ignored; coordinates outside the grid are simply not drivable.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .boundary import BoundaryRasterizer, Pixel, Polygon
from .config import RaceConfig, default_race_config
from .grid import TileGrid
from .vehicle import CandidateMove, MoveRecord, Tile, Vehicle, create_vehicle


logger = logging.getLogger(__name__)


class GamePhase(Enum):
    """Lifecycle phase of a race"""
    DRAW_INNER = "draw_inner"
    DRAW_OUTER = "draw_outer"
    RACING = "racing"
    FINISHED = "finished"


@dataclass(frozen=True)
class VehicleSnapshot:
    """Render-ready view of one car"""
    id: int
    color: str
    position: Tile
    velocity: Tile
    laps: int
    crossed_start: bool
    skip_next_turn: bool
    history: Tuple[MoveRecord, ...]


@dataclass(frozen=True)
class RaceSnapshot:
    """Everything a presentation layer needs after a mutating call"""
    phase: GamePhase
    current_player: int
    vehicles: Tuple[VehicleSnapshot, ...]
    candidate_moves: Tuple[CandidateMove, ...]
    landing_tile: Optional[Tile]
    hovered_tile: Optional[Tile]
    winner_id: Optional[int]
    laps_to_win: int
    drawing_path: Tuple[Pixel, ...]
    inner_polygon: Optional[Tuple[Pixel, ...]]
    outer_polygon: Optional[Tuple[Pixel, ...]]
    left_post: Tile
    right_post: Tile
    # (first x, last x exclusive, y)
    start_line: Tuple[int, int, int]

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["phase"] = self.phase.value
        return result


class RaceEngine:
    """
    Two-player turn-based race on a tile grid

    Args:
        config: Race configuration (defaults to the classic 50x35 layout)
    """

    def __init__(self, config: Optional[RaceConfig] = None):
        self.config = config or default_race_config
        self._install_fresh_state()

    # === LIFECYCLE ===

    def _install_fresh_state(self) -> None:
        config = self.config
        grid = TileGrid(config.grid_width, config.grid_height, config.tile_size)
        rasterizer = BoundaryRasterizer(grid, config.min_point_distance)
        vehicles = [
            create_vehicle(index + 1, color, x, y, config.initial_velocity)
            for index, (color, (x, y)) in enumerate(zip(config.player_colors, config.start_positions))
        ]

        # Swap everything in together so no half-reset state is observable
        self.grid = grid
        self.rasterizer = rasterizer
        self.vehicles: List[Vehicle] = vehicles
        self.current_player = 0
        self.phase = GamePhase.DRAW_INNER
        self.candidate_moves: List[CandidateMove] = []
        self.hovered_tile: Optional[Tile] = None
        self.winner_index: Optional[int] = None

    def reset(self) -> None:
        """Full restart: empty track, cars on the start line, inner drawing phase"""
        logger.info("Race reset")
        self._install_fresh_state()

    @property
    def active_vehicle(self) -> Vehicle:
        return self.vehicles[self.current_player]

    @property
    def winner(self) -> Optional[Vehicle]:
        if self.winner_index is None:
            return None
        return self.vehicles[self.winner_index]

    def _set_phase(self, phase: GamePhase) -> None:
        logger.info("Phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    # === POINTER INPUT ===

    def pointer_down(self, px: float, py: float) -> None:
        """
        Pointer pressed at pixel coordinates

        While drawing, a path only starts on the required post: the right post
        for the inner boundary, the left post for the outer one. While racing
        the press is a move request for the tile under the pointer.
        """
        tile = self.grid.pixel_to_tile(px, py)
        logger.debug("pointer_down %s in %s", tile, self.phase.value)

        if self.phase == GamePhase.DRAW_INNER:
            if tile == self.config.right_post:
                self.rasterizer.begin_path(px, py)
        elif self.phase == GamePhase.DRAW_OUTER:
            if tile == self.config.left_post:
                self.rasterizer.begin_path(px, py)
        elif self.phase == GamePhase.RACING:
            self.try_move(*tile)

    def pointer_move(self, px: float, py: float) -> None:
        if self.phase in (GamePhase.DRAW_INNER, GamePhase.DRAW_OUTER):
            self.rasterizer.extend(px, py)
        elif self.phase == GamePhase.RACING:
            self.hovered_tile = self.grid.pixel_to_tile(px, py)

    def pointer_up(self) -> None:
        """Pointer released: closes the boundary being drawn, if any"""
        if self.phase not in (GamePhase.DRAW_INNER, GamePhase.DRAW_OUTER):
            return
        if not self.rasterizer.is_drawing:
            return

        polygon = self.rasterizer.close_path()
        if polygon is None:
            return

        if self.phase == GamePhase.DRAW_INNER:
            self._finish_inner(polygon)
        else:
            self._finish_outer(polygon)

    def pointer_leave(self) -> None:
        self.hovered_tile = None

    def _finish_inner(self, polygon: Polygon) -> None:
        self.rasterizer.apply_inner(polygon)
        self.rasterizer.clear_path()
        self._set_phase(GamePhase.DRAW_OUTER)

    def _finish_outer(self, polygon: Polygon) -> None:
        self.rasterizer.apply_outer(polygon)
        self.rasterizer.clear_path()
        self._set_phase(GamePhase.RACING)
        self.update_candidate_moves()

    def build_track(self, inner: Sequence[Pixel], outer: Sequence[Pixel]) -> bool:
        """
        Run both drawing phases from ready-made polygons

        Returns:
            True if the race is now running
        """
        if self.phase != GamePhase.DRAW_INNER:
            return False
        if len(inner) < 3 or len(outer) < 3:
            return False
        self._finish_inner(list(inner))
        self._finish_outer(list(outer))
        return True

    # === MOVES ===

    def try_move(self, target_x: int, target_y: int) -> bool:
        """
        Move the active car towards a candidate tile

        The car travels along a straight tile line and stops on the last
        drivable tile before anything else. Falling short of the target is a
        crash and costs the car its next turn.

        Returns:
            True if the move was accepted
        """
        if self.phase != GamePhase.RACING:
            return False
        if not any(m.x == target_x and m.y == target_y for m in self.candidate_moves):
            logger.debug("try_move (%d, %d) rejected: not a candidate", target_x, target_y)
            return False

        car = self.active_vehicle
        prev_y = car.y
        impact = self.find_impact_point(car.x, car.y, target_x, target_y)
        car.skip_next_turn = impact != (target_x, target_y)
        if car.skip_next_turn:
            logger.info("Car %d crashed at %s (aimed for %s)", car.id, impact, (target_x, target_y))
        car.apply_move(*impact)

        self.check_lap_progress(car, prev_y)

        if car.laps >= self.config.laps_to_win:
            logger.info("Car %d wins with %d laps", car.id, car.laps)
            self.winner_index = self.current_player
            self.candidate_moves = []
            self._set_phase(GamePhase.FINISHED)
            return True

        self._advance_turn()
        self.update_candidate_moves()
        return True

    def find_impact_point(self, start_x: int, start_y: int, end_x: int, end_y: int) -> Tile:
        """
        Walk a Bresenham line from start to end

        Returns:
            The last drivable tile reached; the end tile itself on a clean move
        """
        dx = abs(end_x - start_x)
        dy = abs(end_y - start_y)
        sx = 1 if start_x < end_x else -1
        sy = 1 if start_y < end_y else -1
        err = dx - dy

        x, y = start_x, start_y
        last = (start_x, start_y)
        while (x, y) != (end_x, end_y):
            e2 = 2 * err
            if e2 > -dy:
                err -= dy
                x += sx
            if e2 < dx:
                err += dx
                y += sy
            if not self.grid.is_drivable(x, y):
                break
            last = (x, y)
        return last

    def check_lap_progress(self, car: Vehicle, prev_y: int) -> bool:
        """
        Update the lap latch and counter after a move

        Only moves ending inside the start line's horizontal span count. The
        first upward crossing arms the car; each later upward crossing while
        armed is a lap. A downward crossing disarms it, so rocking back and
        forth over the line never adds laps.

        Returns:
            True if a lap was completed
        """
        line_y = self.config.start_line_y
        in_line = self.config.start_line_x <= car.x < self.config.start_line_end_x
        if not in_line:
            return False

        crossed_upward = prev_y >= line_y and car.y < line_y
        crossed_downward = prev_y < line_y and car.y >= line_y

        if crossed_upward:
            lap_done = car.crossed_start
            if lap_done:
                car.laps += 1
                logger.info("Car %d completed lap %d", car.id, car.laps)
            car.crossed_start = True
            return lap_done
        if crossed_downward:
            logger.info("Car %d crossed the start line backwards", car.id)
            car.crossed_start = False
        return False

    def _advance_turn(self) -> None:
        self.current_player = (self.current_player + 1) % len(self.vehicles)

    def update_candidate_moves(self) -> None:
        """
        Compute the moves for whoever is to play next

        Cars flagged after a crash sit their turn out (at most
        ``max_auto_skips`` in a row, which keeps two crashed cars from
        skipping forever). A car whose whole landing neighbourhood is off the
        grid is driven into the grid edge instead: it moves to the impact
        point towards its clamped landing tile, stops, and loses its next turn.
        """
        while True:
            skips = 0
            while self.active_vehicle.skip_next_turn and skips < self.config.max_auto_skips:
                logger.info("Car %d skips this turn", self.active_vehicle.id)
                self.active_vehicle.skip_next_turn = False
                self._advance_turn()
                skips += 1

            car = self.active_vehicle
            moves = car.candidate_moves(self.grid)
            if moves:
                self.candidate_moves = moves
                return

            landing_x, landing_y = car.landing_tile()
            target = (
                max(0, min(self.grid.width - 1, landing_x)),
                max(0, min(self.grid.height - 1, landing_y)),
            )
            impact = self.find_impact_point(car.x, car.y, *target)
            logger.info("Car %d has no moves on the grid, hits the edge at %s", car.id, impact)
            car.apply_move(*impact)
            car.stop()
            car.skip_next_turn = True
            self._advance_turn()

    # === QUERIES ===

    def landing_tile(self) -> Optional[Tile]:
        if self.phase != GamePhase.RACING:
            return None
        return self.active_vehicle.landing_tile()

    def snapshot(self) -> RaceSnapshot:
        """Immutable view of the current state for presentation"""
        vehicles = tuple(
            VehicleSnapshot(
                id=car.id,
                color=car.color,
                position=car.position,
                velocity=car.velocity,
                laps=car.laps,
                crossed_start=car.crossed_start,
                skip_next_turn=car.skip_next_turn,
                history=car.history,
            )
            for car in self.vehicles
        )
        inner = self.rasterizer.inner_polygon
        outer = self.rasterizer.outer_polygon
        return RaceSnapshot(
            phase=self.phase,
            current_player=self.current_player,
            vehicles=vehicles,
            candidate_moves=tuple(self.candidate_moves),
            landing_tile=self.landing_tile(),
            hovered_tile=self.hovered_tile,
            winner_id=self.winner.id if self.winner else None,
            laps_to_win=self.config.laps_to_win,
            drawing_path=tuple(self.rasterizer.points),
            inner_polygon=tuple(inner) if inner else None,
            outer_polygon=tuple(outer) if outer else None,
            left_post=self.config.left_post,
            right_post=self.config.right_post,
            start_line=(self.config.start_line_x, self.config.start_line_end_x, self.config.start_line_y),
        )
