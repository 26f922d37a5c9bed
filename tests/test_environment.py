"""
Tests for the Vector Racer ML Environment

Tests cover:
- Preset oval track geometry
- Scripted opponents
- Gym environment interface
- Reward function
- Parallel environment support
- Progress tracking
"""

import math
import pytest
import numpy as np
import gymnasium as gym

from vector_racer.environment.config import RaceConfig
from vector_racer.environment.engine import GamePhase
from vector_racer.environment.grid import TileKind
from vector_racer.environment.opponents import clean_moves, greedy_opponent, random_opponent
from vector_racer.environment.racing_env import VectorRacerEnv, make_vec_env
from vector_racer.environment.vehicle import ACCELERATIONS
from vector_racer.environment.track import (
    create_oval_engine,
    create_oval_layout,
    get_track_progress_angle,
    progress_delta,
)


class TestTrackGeometry:
    """Tests for the preset oval"""

    def test_oval_dimensions(self):
        """Oval fitted to the default 50x35 grid of 16px tiles"""
        layout = create_oval_layout()
        assert (layout.outer_left, layout.outer_top, layout.outer_right, layout.outer_bottom) == (80, 16, 720, 544)
        assert (layout.inner_left, layout.inner_top, layout.inner_right, layout.inner_bottom) == (176, 112, 624, 448)
        assert layout.corner_radius == 128
        assert layout.inner_corner_radius == 32

    def test_oval_engine_is_racing(self):
        engine = create_oval_engine()
        assert engine.phase == GamePhase.RACING
        assert len(engine.candidate_moves) == 9

    def test_start_positions_on_track(self):
        engine = create_oval_engine()
        for car in engine.vehicles:
            assert engine.grid.is_drivable(car.x, car.y)
        assert engine.grid.is_drivable(*engine.landing_tile())

    def test_infield_and_exterior_not_drivable(self):
        engine = create_oval_engine()
        assert not engine.grid.is_drivable(25, 17)
        assert not engine.grid.is_drivable(0, 0)
        assert not engine.grid.is_drivable(49, 34)
        assert engine.grid.count(TileKind.BARRIER) > 0

    def test_oval_fits_other_grids(self):
        config = RaceConfig(grid_width=40, grid_height=30, tile_size=10)
        engine = create_oval_engine(config)
        assert engine.phase == GamePhase.RACING
        for car in engine.vehicles:
            assert engine.grid.is_drivable(car.x, car.y)

    @pytest.mark.parametrize("config", [
        RaceConfig(),
        RaceConfig(grid_width=40, grid_height=30, tile_size=10),
        RaceConfig(grid_width=30, grid_height=20, tile_size=10),
    ])
    def test_start_row_is_exactly_the_start_line(self, config):
        """Only the start line itself is drivable on the start row"""
        engine = create_oval_engine(config)
        row = engine.grid.drivable_mask()[config.start_line_y, :config.grid_width // 2]
        assert list(np.flatnonzero(row)) == list(range(config.start_line_x, config.start_line_end_x))
        assert not engine.grid.is_drivable(*config.left_post)
        assert not engine.grid.is_drivable(*config.right_post)

    @pytest.mark.parametrize("y", [12, 22])
    def test_left_straight_spans_the_start_line(self, y):
        engine = create_oval_engine()
        row = engine.grid.drivable_mask()[y, :25]
        assert list(np.flatnonzero(row)) == list(range(5, 11))

    def test_grid_too_small_for_oval(self):
        with pytest.raises(ValueError):
            create_oval_layout(RaceConfig(grid_width=14, grid_height=20, tile_size=10))

    def test_greedy_race_finishes(self):
        """Two greedy drivers complete a lap through try_move alone"""
        engine = create_oval_engine()
        rng = np.random.default_rng(0)
        for _ in range(2000):
            if engine.phase == GamePhase.FINISHED:
                break
            assert engine.try_move(*greedy_opponent(engine, rng))

        assert engine.phase == GamePhase.FINISHED
        assert engine.winner.laps == 1


class TestOpponents:
    """Tests for the scripted drivers"""

    @pytest.fixture
    def engine(self):
        engine = create_oval_engine()
        engine.try_move(7, 15)
        assert engine.current_player == 1
        return engine

    def test_random_opponent_picks_clean_candidate(self, engine):
        rng = np.random.default_rng(0)
        clean = {move.position for move in clean_moves(engine)}
        for _ in range(10):
            assert random_opponent(engine, rng) in clean

    def test_greedy_opponent_maximizes_progress(self, engine):
        """From the start the greedy driver heads up and towards the infield"""
        assert greedy_opponent(engine, np.random.default_rng(0)) == (10, 14)

    def test_greedy_opponent_move_is_accepted(self, engine):
        target = greedy_opponent(engine, np.random.default_rng(1))
        assert engine.try_move(*target)
        assert engine.current_player == 0
        assert not engine.vehicles[1].skip_next_turn


class TestRacingEnvironment:
    """Tests for the Gym environment interface"""

    def test_env_creation(self):
        """Test environment can be created"""
        env = VectorRacerEnv()
        assert env.observation_space.shape == (27,)
        assert env.action_space.n == 9
        env.close()

    def test_env_reset(self):
        """Test environment reset"""
        env = VectorRacerEnv()
        obs, info = env.reset(seed=42)

        assert obs.shape == (27,)
        assert obs.dtype == np.float32
        assert np.all(obs >= -1.0) and np.all(obs <= 1.0)
        assert info["step"] == 0
        assert info["position"] == (7, 17)
        assert info["velocity"] == (0, -2)
        assert not info["race_finished"]
        env.close()

    def test_env_step(self):
        """Test environment step"""
        env = VectorRacerEnv()
        env.reset(seed=42)

        obs, reward, terminated, truncated, info = env.step(0)

        assert obs.shape == (27,)
        assert isinstance(reward, float)
        assert isinstance(terminated, bool)
        assert isinstance(truncated, bool)
        assert info["step"] == 1
        assert info["position"] == (7, 15)
        assert env.engine.current_player == 0
        assert info["episode_opponent_turns"] == 1
        env.close()

    def test_gym_make(self):
        env = gym.make("VectorRacer-v0", opponent="random")
        obs, _ = env.reset(seed=0)
        assert obs.shape == (27,)
        env.close()

    def test_action_masks_at_start(self):
        """Every action is clean from the start line"""
        env = VectorRacerEnv()
        env.reset(seed=0)
        masks = env.action_masks()
        assert masks.shape == (9,)
        assert masks.dtype == bool
        assert masks.all()
        env.close()

    def test_forward_progress_rewarded(self):
        env = VectorRacerEnv()
        env.reset(seed=0)
        _, reward, _, _, _ = env.step(0)
        assert reward > 0
        env.close()

    def test_crash_penalty(self):
        """Crashing into a barrier costs the penalty and hands the opponent two turns"""
        env = VectorRacerEnv()
        env.reset(seed=0)
        env.engine.grid.set_classification(7, 15, TileKind.BARRIER)
        env.engine.update_candidate_moves()

        _, reward, terminated, _, info = env.step(0)

        assert info["crashed"]
        assert info["position"] == (7, 16)
        assert info["episode_crashes"] == 1
        assert info["episode_opponent_turns"] == 2
        assert reward < env.reward_crash_penalty + 0.5
        assert not terminated
        assert env.engine.current_player == 0
        env.close()

    def test_episode_truncation(self):
        """Test episode truncates at max steps"""
        env = VectorRacerEnv(max_steps=3)
        env.reset(seed=0)
        for _ in range(2):
            _, _, terminated, truncated, _ = env.step(0)
            assert not terminated and not truncated
        _, _, terminated, truncated, info = env.step(0)
        assert truncated
        assert not terminated
        assert info["position"] == (7, 11)
        env.close()

    def test_random_episode_ends(self):
        env = VectorRacerEnv(max_steps=40, opponent="random")
        env.reset(seed=3)
        env.action_space.seed(3)
        for _ in range(40):
            _, _, terminated, truncated, _ = env.step(env.action_space.sample())
            if terminated or truncated:
                break
        assert terminated or truncated
        env.close()

    def test_custom_opponent_callable(self):
        calls = []

        def first_candidate(engine, rng):
            calls.append(engine.current_player)
            return engine.candidate_moves[0].position

        env = VectorRacerEnv(opponent=first_candidate)
        env.reset(seed=0)
        env.step(0)
        assert calls == [1]
        env.close()

    def test_forced_collision_on_opponent_turn_counts_as_crash(self):
        """An agent shoved off the grid during the opponent's turn is charged the crash"""
        shoved = []

        def shove_agent(engine, rng):
            if not shoved:
                # Agent will land far past the left edge of the grid
                engine.vehicles[0].vx = -40
                shoved.append(True)
            return random_opponent(engine, rng)

        env = VectorRacerEnv(opponent=shove_agent)
        env.reset(seed=0)
        _, reward, _, _, info = env.step(0)

        assert info["crashed"]
        assert info["episode_crashes"] == 1
        assert info["position"][0] == 5
        assert info["velocity"] == (0, 0)
        assert reward < env.reward_crash_penalty + 0.5
        env.close()

    def test_greedy_agent_finishes_race(self):
        """Driving the agent with the greedy policy ends the episode by a finish"""
        env = VectorRacerEnv(max_steps=1000)
        env.reset(seed=0)
        terminated = truncated = False
        while not (terminated or truncated):
            engine = env.engine
            landing_x, landing_y = engine.landing_tile()
            tx, ty = greedy_opponent(engine, env.np_random)
            action = ACCELERATIONS.index((tx - landing_x, ty - landing_y))
            _, _, terminated, truncated, info = env.step(action)

        assert terminated
        assert info["race_finished"]
        assert max(info["laps"], info["opponent_laps"]) == 1
        env.close()

    def test_render_ansi(self):
        """Test ANSI rendering"""
        env = VectorRacerEnv(render_mode="ansi")
        env.reset(seed=0)
        output = env.render()
        assert isinstance(output, str)
        assert "Phase: racing" in output
        assert "Laps:" in output
        assert "1" in output and "2" in output
        env.close()

    def test_render_rgb_array(self):
        """Test RGB array rendering"""
        env = VectorRacerEnv(render_mode="rgb_array")
        env.reset(seed=0)
        frame = env.render()
        assert frame.shape == (35 * 4, 50 * 4, 3)
        assert frame.dtype == np.uint8
        env.close()

    def test_no_render_mode(self):
        env = VectorRacerEnv()
        env.reset(seed=0)
        assert env.render() is None
        env.close()

    def test_state_snapshot(self):
        env = VectorRacerEnv()
        assert env.get_state() == {}
        env.reset(seed=0)
        env.step(0)
        state = env.get_state()
        assert state["step_count"] == 1
        assert state["race"]["phase"] == "racing"
        assert state["race"]["vehicles"][0]["position"] == (7, 15)
        env.close()


class TestVectorizedEnvironment:
    """Tests for vectorized environment support"""

    def test_sync_vec_env(self):
        """Test synchronous vectorized environment"""
        vec_env = make_vec_env(num_envs=2, max_steps=5)
        obs, infos = vec_env.reset(seed=0)
        assert obs.shape == (2, 27)

        obs, rewards, terminated, truncated, infos = vec_env.step(np.zeros(2, dtype=np.int64))
        assert obs.shape == (2, 27)
        assert rewards.shape == (2,)
        vec_env.close()


class TestProgressTracking:
    """Tests for progress around the track"""

    def test_progress_angle_at_start(self):
        """The left side of the track is the zero angle"""
        engine = create_oval_engine()
        assert get_track_progress_angle(engine, 7, 17) == pytest.approx(0.0)

    def test_progress_increases_up_the_left_straight(self):
        engine = create_oval_engine()
        start = get_track_progress_angle(engine, 7, 17)
        ahead = get_track_progress_angle(engine, 7, 12)
        assert progress_delta(start, ahead) > 0

    def test_top_of_track_is_quarter_turn(self):
        engine = create_oval_engine()
        assert get_track_progress_angle(engine, 25, 2) == pytest.approx(math.pi / 2, abs=0.05)

    def test_progress_delta_unwraps(self):
        assert progress_delta(2 * math.pi - 0.1, 0.1) == pytest.approx(0.2)
        assert progress_delta(0.1, 2 * math.pi - 0.1) == pytest.approx(-0.2)
        assert progress_delta(1.0, 1.5) == pytest.approx(0.5)
