"""
Tests for boundary drawing and rasterization

Tests cover:
- Ray casting point-in-polygon (scalar and vectorized)
- Path capture with distance decimation
- Inner / outer rasterization and the barrier ring
"""

import numpy as np
import pytest

from vector_racer.environment.boundary import (
    BoundaryRasterizer,
    generate_rounded_rect_points,
    point_in_polygon,
    points_in_polygon,
)
from vector_racer.environment.grid import TileGrid, TileKind


SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10)]

# 20x20 tiles of 10px: inner square covers tiles 8-11, outer square tiles 2-17
INNER = [(80, 80), (120, 80), (120, 120), (80, 120)]
OUTER = [(20, 20), (180, 20), (180, 180), (20, 180)]


class TestPointInPolygon:
    """Tests for the parity test"""

    def test_square_inside_and_outside(self):
        assert point_in_polygon(5, 5, SQUARE)
        assert not point_in_polygon(15, 15, SQUARE)

    def test_closed_ring_gives_same_answer(self):
        """Repeating the first vertex adds a zero-length edge that never counts"""
        closed = SQUARE + [SQUARE[0]]
        assert point_in_polygon(5, 5, closed)
        assert not point_in_polygon(-1, 5, closed)

    def test_degenerate_polygon_contains_nothing(self):
        assert not point_in_polygon(0, 0, [])
        assert not point_in_polygon(0, 0, None)
        assert not point_in_polygon(1, 1, [(0, 0), (2, 2)])

    def test_concave_polygon(self):
        """Points in the notch of a U shape are outside"""
        u_shape = [(0, 0), (30, 0), (30, 30), (20, 30), (20, 10), (10, 10), (10, 30), (0, 30)]
        assert point_in_polygon(5, 20, u_shape)
        assert point_in_polygon(25, 20, u_shape)
        assert not point_in_polygon(15, 20, u_shape)
        assert point_in_polygon(15, 5, u_shape)

    def test_vectorized_matches_scalar(self):
        """Batch test agrees with the scalar test point by point"""
        triangle = [(0, 0), (40, 5), (10, 35)]
        xs, ys = np.meshgrid(np.arange(-5, 45, 3.5), np.arange(-5, 40, 2.5))
        batch = points_in_polygon(xs, ys, triangle)
        for (row, col), value in np.ndenumerate(batch):
            assert value == point_in_polygon(xs[row, col], ys[row, col], triangle)

    def test_vectorized_degenerate_polygon(self):
        result = points_in_polygon(np.array([1.0, 2.0]), np.array([1.0, 2.0]), [(0, 0), (5, 5)])
        assert not result.any()


class TestPathCapture:
    """Tests for begin / extend / close"""

    def test_extend_decimates_close_points(self):
        """Points within 5px of the last recorded point are dropped"""
        rasterizer = BoundaryRasterizer(TileGrid(10, 10, 10))
        rasterizer.begin_path(0, 0)
        assert not rasterizer.extend(3, 0)
        assert rasterizer.extend(6, 0)
        assert not rasterizer.extend(6, 5)  # exactly 5px is not enough
        assert rasterizer.extend(6, 11.5)
        assert rasterizer.points == [(0, 0), (6, 0), (6, 11.5)]

    def test_extend_ignored_when_not_drawing(self):
        rasterizer = BoundaryRasterizer(TileGrid(10, 10, 10))
        assert not rasterizer.extend(50, 50)
        assert rasterizer.points == []

    def test_close_path_appends_first_point(self):
        rasterizer = BoundaryRasterizer(TileGrid(10, 10, 10))
        rasterizer.begin_path(0, 0)
        rasterizer.extend(20, 0)
        rasterizer.extend(20, 20)
        polygon = rasterizer.close_path()
        assert polygon == [(0, 0), (20, 0), (20, 20), (0, 0)]
        assert not rasterizer.is_drawing

    def test_close_path_with_too_few_points_fails(self):
        rasterizer = BoundaryRasterizer(TileGrid(10, 10, 10))
        rasterizer.begin_path(0, 0)
        rasterizer.extend(20, 0)
        assert rasterizer.close_path() is None
        assert not rasterizer.is_drawing

    def test_decimation_is_rate_independent(self):
        """Dense and sparse event streams along the same line record the same points"""
        dense = BoundaryRasterizer(TileGrid(10, 10, 10))
        sparse = BoundaryRasterizer(TileGrid(10, 10, 10))
        dense.begin_path(0, 0)
        sparse.begin_path(0, 0)
        for x in range(1, 61):
            dense.extend(x, 0)
        for x in (6, 12, 18, 24, 30, 36, 42, 48, 54, 60):
            sparse.extend(x, 0)
        assert dense.points == sparse.points


class TestRasterization:
    """Tests for applying polygons to the grid"""

    @pytest.fixture
    def grid(self):
        grid = TileGrid(20, 20, 10)
        rasterizer = BoundaryRasterizer(grid)
        assert rasterizer.apply_inner(INNER)
        assert rasterizer.apply_outer(OUTER)
        return grid

    def test_inner_tiles_not_drivable(self, grid):
        for y in range(8, 12):
            for x in range(8, 12):
                assert not grid.is_drivable(x, y)

    def test_outer_tiles_not_drivable(self, grid):
        for i in range(20):
            for edge in (0, 1, 18, 19):
                assert not grid.is_drivable(i, edge)
                assert not grid.is_drivable(edge, i)

    def test_track_between_boundaries_is_drivable(self, grid):
        for y in range(2, 18):
            for x in range(2, 18):
                if 8 <= x < 12 and 8 <= y < 12:
                    continue
                assert grid.is_drivable(x, y), (x, y)

    def test_barrier_ring(self, grid):
        """Non-drivable tiles touching the track are barriers, the rest obstacles"""
        assert grid.classify(8, 8) == TileKind.BARRIER
        assert grid.classify(8, 10) == TileKind.BARRIER
        assert grid.classify(9, 9) == TileKind.OBSTACLE
        assert grid.classify(10, 10) == TileKind.OBSTACLE
        assert grid.classify(1, 5) == TileKind.BARRIER
        assert grid.classify(1, 1) == TileKind.BARRIER
        assert grid.classify(0, 5) == TileKind.OBSTACLE

    def test_every_tile_touching_track_is_barrier(self, grid):
        for y in range(20):
            for x in range(20):
                if grid.is_drivable(x, y):
                    continue
                touches = any(grid.is_drivable(nx, ny) for nx, ny in grid.neighbors8(x, y))
                expected = TileKind.BARRIER if touches else TileKind.OBSTACLE
                assert grid.classify(x, y) == expected, (x, y)

    def test_degenerate_polygons_are_skipped(self):
        grid = TileGrid(20, 20, 10)
        rasterizer = BoundaryRasterizer(grid)
        assert not rasterizer.apply_inner([(0, 0), (100, 100)])
        assert not rasterizer.apply_outer([])
        assert grid.drivable_mask().all()
        assert rasterizer.inner_polygon is None

    def test_reset_forgets_polygons(self):
        rasterizer = BoundaryRasterizer(TileGrid(20, 20, 10))
        rasterizer.apply_inner(INNER)
        rasterizer.begin_path(1, 1)
        rasterizer.reset()
        assert rasterizer.inner_polygon is None
        assert rasterizer.points == []
        assert not rasterizer.is_drawing


class TestRoundedRect:
    """Tests for preset rounded rectangle generation"""

    def test_ring_is_closed(self):
        points = generate_rounded_rect_points(0, 0, 100, 60, 10, points_per_corner=4)
        assert len(points) == 4 * 5 + 1
        assert points[0] == points[-1]
        assert points[0] == pytest.approx((0, 10))

    def test_left_side_is_straight_between_corners(self):
        points = generate_rounded_rect_points(0, 0, 100, 60, 10)
        assert point_in_polygon(1, 12, points)
        assert point_in_polygon(1, 48, points)
        assert not point_in_polygon(-1, 30, points)

    def test_corners_are_cut(self):
        points = generate_rounded_rect_points(0, 0, 100, 60, 10)
        assert point_in_polygon(50, 30, points)
        assert not point_in_polygon(1, 1, points)
        assert not point_in_polygon(99, 59, points)

    def test_radius_clamped_to_shorter_side(self):
        points = generate_rounded_rect_points(0, 0, 100, 60, 500, points_per_corner=4)
        assert points[0] == pytest.approx((0, 30))
