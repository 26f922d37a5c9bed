"""
Tests for the tile grid

Tests cover:
- Drivability and classification queries, including out-of-range input
- Pixel / tile conversion
- Reset and ray distances
"""

import numpy as np

from vector_racer.environment.grid import TileGrid, TileKind, RAY_DIRECTIONS


class TestQueries:
    """Tests for drivability and classification"""

    def test_new_grid_is_fully_drivable(self):
        """A fresh grid has every tile drivable"""
        grid = TileGrid(6, 4, 10)
        assert grid.count(TileKind.DRIVABLE) == 24
        assert grid.tiles.shape == (4, 6)

    def test_out_of_range_is_never_drivable(self):
        """Every coordinate outside the grid reports not drivable and no kind"""
        grid = TileGrid(6, 4, 10)
        for y in range(-3, 8):
            for x in range(-3, 10):
                inside = 0 <= x < 6 and 0 <= y < 4
                assert grid.is_drivable(x, y) == inside
                if not inside:
                    assert grid.classify(x, y) is None

    def test_barrier_and_obstacle_not_drivable(self):
        """Both non-drivable kinds block driving"""
        grid = TileGrid(6, 4, 10)
        grid.set_classification(1, 1, TileKind.BARRIER)
        grid.set_classification(2, 1, TileKind.OBSTACLE)
        assert not grid.is_drivable(1, 1)
        assert not grid.is_drivable(2, 1)
        assert grid.classify(1, 1) == TileKind.BARRIER
        assert grid.classify(2, 1) == TileKind.OBSTACLE
        assert grid.classify(3, 1) == TileKind.DRIVABLE

    def test_set_classification_out_of_range_is_ignored(self):
        """Writes outside the grid change nothing and raise nothing"""
        grid = TileGrid(6, 4, 10)
        before = grid.tiles.copy()
        grid.set_classification(-1, 0, TileKind.BARRIER)
        grid.set_classification(6, 3, TileKind.BARRIER)
        grid.set_classification(0, 4, TileKind.OBSTACLE)
        assert np.array_equal(grid.tiles, before)

    def test_reset_all_drivable(self):
        """Reset restores the initial state"""
        grid = TileGrid(6, 4, 10)
        grid.tiles[:, :] = TileKind.OBSTACLE
        grid.reset_all_drivable()
        assert grid.drivable_mask().all()


class TestCoordinates:
    """Tests for pixel / tile conversion"""

    def test_pixel_to_tile_floors(self):
        grid = TileGrid(50, 35, 16)
        assert grid.pixel_to_tile(33, 15) == (2, 0)
        assert grid.pixel_to_tile(15.9, 16.0) == (0, 1)

    def test_tile_to_pixel(self):
        grid = TileGrid(50, 35, 16)
        assert grid.tile_to_pixel(2, 3) == (32, 48)

    def test_tile_center(self):
        grid = TileGrid(50, 35, 16)
        assert grid.tile_center(0, 0) == (8.0, 8.0)
        assert grid.tile_center(2, 1) == (40.0, 24.0)

    def test_tile_centers_match_tile_center(self):
        """Vectorized centres agree with the scalar helper"""
        grid = TileGrid(5, 3, 10)
        cx, cy = grid.tile_centers()
        assert cx.shape == (3, 5)
        assert (cx[2, 4], cy[2, 4]) == grid.tile_center(4, 2)


class TestNeighbours:
    """Tests for neighbourhood helpers"""

    def test_corner_has_three_neighbours(self):
        grid = TileGrid(5, 5, 10)
        assert sorted(grid.neighbors8(0, 0)) == [(0, 1), (1, 0), (1, 1)]

    def test_interior_has_eight_neighbours(self):
        grid = TileGrid(5, 5, 10)
        assert len(list(grid.neighbors8(2, 2))) == 8

    def test_ray_distances_on_open_grid(self):
        """Rays stop at the grid edge"""
        grid = TileGrid(5, 5, 10)
        distances = grid.distances_to_barrier(2, 2)
        assert len(distances) == len(RAY_DIRECTIONS)
        assert distances == [2] * 8

    def test_ray_distance_stops_at_barrier(self):
        grid = TileGrid(10, 10, 10)
        grid.set_classification(5, 2, TileKind.BARRIER)
        north = grid.distances_to_barrier(5, 6, directions=[(0, -1)])
        assert north == [3]

    def test_ray_distance_is_capped(self):
        grid = TileGrid(40, 5, 10)
        assert grid.distances_to_barrier(0, 2, directions=[(1, 0)], max_distance=10) == [10]
