"""
Gym-compatible Vector Racer Environment for ML training

The agent drives car 1 on the preset oval against a scripted opponent in
car 2. One environment step is one agent turn: the agent's move is resolved,
then the opponent plays (including any turns the agent has to sit out after
a crash) until it is the agent's turn again or the race is over.

Features:
- Same RaceEngine rules as the interactive game
- Discrete(9) acceleration actions, always mapped onto a legal candidate
- Reward for progress around the track, laps and winning
- Penalties for crashes and per turn
- Support for parallel training (vectorized environments)
"""

import math
from typing import Any, Dict, Optional, Tuple, Union

import gymnasium as gym
import numpy as np
from gymnasium import spaces

from .config import RaceConfig, default_race_config
from .engine import GamePhase, RaceEngine
from .opponents import OPPONENTS, OpponentPolicy
from .render import render_ansi, render_rgb_array
from .track import create_oval_engine, get_track_progress_angle, progress_delta
from .vehicle import ACCELERATIONS, action_to_target


AGENT_INDEX = 0
OPPONENT_INDEX = 1

# Normalization caps
MAX_SPEED = 8.0
MAX_RAY_DISTANCE = 20


class VectorRacerEnv(gym.Env):
    """
    Vector Racer Environment

    Observation Space:
        Box space with 27 features:
        - [0-1]: agent x, y (normalized to 0-1)
        - [2-3]: agent velocity (normalized to -1 to 1)
        - [4-12]: outcome of each action: 1 clean, 0 crash, -1 off the grid
        - [13]: armed lap latch (0 or 1)
        - [14]: laps completed / laps to win
        - [15]: opponent laps / laps to win
        - [16-17]: opponent x, y (normalized to 0-1)
        - [18]: progress around the track (0 to 1)
        - [19-26]: drivable distance along 8 compass rays (normalized)

    Action Space:
        Discrete(9), indexes into ACCELERATIONS:
        0: No acceleration
        1-8: Accelerate N, NE, E, SE, S, SW, W, NW

    Reward Function:
        - Positive reward for forward progress around the track
        - Negative reward for crashing
        - Large positive reward for completing a lap
        - Win/loss bonus when the race ends
        - Small negative reward per turn (encourages speed)
    """

    metadata = {"render_modes": ["human", "rgb_array", "ansi"], "render_fps": 4}

    def __init__(
        self,
        render_mode: Optional[str] = None,
        max_steps: int = 300,
        opponent: Union[str, OpponentPolicy] = "greedy",
        race_config: Optional[RaceConfig] = None,
        reward_progress_weight: float = 1.0,
        reward_crash_penalty: float = -2.0,
        reward_lap_complete: float = 20.0,
        reward_win: float = 50.0,
        reward_loss: float = -20.0,
        reward_time_penalty: float = -0.05,
    ):
        """
        Initialize the racing environment

        Args:
            render_mode: Rendering mode ('human', 'rgb_array', 'ansi', or None)
            max_steps: Maximum agent turns per episode
            opponent: Opponent name ('greedy', 'random') or policy callable
            race_config: Optional custom race configuration
            reward_progress_weight: Weight for progress reward
            reward_crash_penalty: Penalty for a crash
            reward_lap_complete: Reward for completing a lap
            reward_win: Reward for winning the race
            reward_loss: Penalty when the opponent wins
            reward_time_penalty: Small penalty per turn
        """
        super().__init__()

        self.render_mode = render_mode
        self.max_steps = max_steps
        self.opponent: OpponentPolicy = OPPONENTS[opponent] if isinstance(opponent, str) else opponent
        self.race_config = race_config or default_race_config

        # Reward weights
        self.reward_progress_weight = reward_progress_weight
        self.reward_crash_penalty = reward_crash_penalty
        self.reward_lap_complete = reward_lap_complete
        self.reward_win = reward_win
        self.reward_loss = reward_loss
        self.reward_time_penalty = reward_time_penalty

        self.action_space = spaces.Discrete(len(ACCELERATIONS))

        # 4 kinematic + 9 action outcomes + 3 lap + 2 opponent + 1 progress + 8 rays
        obs_dim = 4 + len(ACCELERATIONS) + 3 + 2 + 1 + 8
        self.observation_space = spaces.Box(
            low=-1.0,
            high=1.0,
            shape=(obs_dim,),
            dtype=np.float32
        )

        # Initialize state
        self.engine: Optional[RaceEngine] = None
        self.step_count = 0

        # Metrics for logging
        self.episode_reward = 0.0
        self.episode_progress = 0.0
        self.episode_crashes = 0
        self.episode_opponent_turns = 0
        self.last_crashed = False

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Reset the environment to initial state

        Args:
            seed: Random seed for reproducibility
            options: Additional options (unused)

        Returns:
            observation: Initial observation
            info: Additional info dictionary
        """
        super().reset(seed=seed)

        self.engine = create_oval_engine(self.race_config)
        self.step_count = 0

        # Reset metrics
        self.episode_reward = 0.0
        self.episode_progress = 0.0
        self.episode_crashes = 0
        self.episode_opponent_turns = 0
        self.last_crashed = False

        return self._get_observation(), self._get_info()

    def step(
        self,
        action: Union[int, np.integer]
    ) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        """
        Take one agent turn

        Args:
            action: Acceleration index (0-8)

        Returns:
            observation: New observation
            reward: Reward for this step
            terminated: Whether the race finished
            truncated: Whether episode was truncated (max steps)
            info: Additional info dictionary
        """
        assert self.engine is not None, "Environment must be reset before stepping"
        engine = self.engine
        agent = engine.vehicles[AGENT_INDEX]

        old_angle = get_track_progress_angle(engine, agent.x, agent.y)
        old_laps = agent.laps

        history_before = len(agent.history)
        target = self._clamp_to_grid(*action_to_target(agent, int(action)))
        accepted = engine.try_move(*target)
        self.step_count += 1

        self._play_opponent()

        # Moves after the agent's own one are forced grid edge collisions,
        # which can land during the opponent's turns
        moves = agent.history[history_before:]
        forced = len(moves) - 1 if accepted else len(moves)
        crashes = int(accepted and moves[0].to_pos != target) + forced
        self.last_crashed = crashes > 0
        self.episode_crashes += crashes

        # Progress covers every move the agent made this step
        new_angle = get_track_progress_angle(engine, agent.x, agent.y)
        reward = self._calculate_reward(old_angle, new_angle, crashes, agent.laps - old_laps)
        self.episode_reward += reward

        terminated = engine.phase == GamePhase.FINISHED
        truncated = not terminated and self.step_count >= self.max_steps

        return self._get_observation(), reward, terminated, truncated, self._get_info()

    def _clamp_to_grid(self, x: int, y: int) -> Tuple[int, int]:
        # The candidate neighbourhood always overlaps the grid, so clamping a
        # requested tile lands on a candidate
        grid = self.engine.grid
        return (max(0, min(grid.width - 1, x)), max(0, min(grid.height - 1, y)))

    def _play_opponent(self) -> None:
        """Let the opponent move until it is the agent's turn or the race ends"""
        engine = self.engine
        # Bounded: each opponent move either hands the turn back or consumes a skip
        for _ in range(8):
            if engine.phase != GamePhase.RACING or engine.current_player == AGENT_INDEX:
                return
            target = self.opponent(engine, self.np_random)
            engine.try_move(*target)
            self.episode_opponent_turns += 1

    def _calculate_reward(self, old_angle: float, new_angle: float, crashes: int, laps_gained: int) -> float:
        """
        Calculate reward for current step

        Args:
            old_angle: Progress angle before the agent's move
            new_angle: Progress angle after the agent's move
            crashes: Crashes the agent suffered this step
            laps_gained: Laps completed by the move

        Returns:
            Reward value
        """
        engine = self.engine
        reward = 0.0

        delta = progress_delta(old_angle, new_angle)
        reward += delta * self.reward_progress_weight
        if delta > 0:
            self.episode_progress += delta

        reward += crashes * self.reward_crash_penalty

        reward += laps_gained * self.reward_lap_complete

        if engine.phase == GamePhase.FINISHED:
            reward += self.reward_win if engine.winner_index == AGENT_INDEX else self.reward_loss

        reward += self.reward_time_penalty
        return reward

    def _action_outcomes(self) -> np.ndarray:
        """1 for a clean move, 0 for a crash, -1 for a target off the grid"""
        engine = self.engine
        agent = engine.vehicles[AGENT_INDEX]
        outcomes = np.zeros(len(ACCELERATIONS), dtype=np.float32)
        for action in range(len(ACCELERATIONS)):
            tx, ty = action_to_target(agent, action)
            if not engine.grid.in_bounds(tx, ty):
                outcomes[action] = -1.0
            elif engine.grid.is_drivable(tx, ty) and engine.find_impact_point(agent.x, agent.y, tx, ty) == (tx, ty):
                outcomes[action] = 1.0
        return outcomes

    def action_masks(self) -> np.ndarray:
        """Boolean mask of actions that end in a clean move"""
        assert self.engine is not None, "Environment must be reset first"
        return self._action_outcomes() > 0

    def _get_observation(self) -> np.ndarray:
        """
        Get current observation from environment state

        Returns:
            Observation array
        """
        assert self.engine is not None
        engine = self.engine
        agent = engine.vehicles[AGENT_INDEX]
        opponent = engine.vehicles[OPPONENT_INDEX]
        width, height = engine.grid.width, engine.grid.height
        laps_to_win = engine.config.laps_to_win

        rays = engine.grid.distances_to_barrier(agent.x, agent.y, max_distance=MAX_RAY_DISTANCE)
        progress = get_track_progress_angle(engine, agent.x, agent.y) / (2 * math.pi)

        observation = np.array([
            agent.x / width,
            agent.y / height,
            agent.vx / MAX_SPEED,
            agent.vy / MAX_SPEED,
            *self._action_outcomes(),
            1.0 if agent.crossed_start else 0.0,
            agent.laps / laps_to_win,
            opponent.laps / laps_to_win,
            opponent.x / width,
            opponent.y / height,
            progress,
            *[d / MAX_RAY_DISTANCE for d in rays],
        ], dtype=np.float32)

        # Clip to observation space bounds
        return np.clip(observation, -1.0, 1.0)

    def _get_info(self) -> Dict[str, Any]:
        """
        Get info dictionary for current state

        Returns:
            Info dictionary with debugging/logging data
        """
        assert self.engine is not None
        engine = self.engine
        agent = engine.vehicles[AGENT_INDEX]
        opponent = engine.vehicles[OPPONENT_INDEX]
        finished = engine.phase == GamePhase.FINISHED

        return {
            "step": self.step_count,
            "position": agent.position,
            "velocity": agent.velocity,
            "laps": agent.laps,
            "opponent_laps": opponent.laps,
            "crashed": self.last_crashed,
            "lap_complete": agent.laps > 0,
            "race_finished": finished,
            "won": finished and engine.winner_index == AGENT_INDEX,
            "episode_reward": self.episode_reward,
            "episode_progress": self.episode_progress,
            "episode_crashes": self.episode_crashes,
            "episode_opponent_turns": self.episode_opponent_turns,
        }

    def render(self) -> Optional[Union[np.ndarray, str]]:
        """
        Render the environment

        Returns:
            Rendered frame (numpy array for rgb_array, string for ansi)
        """
        if self.render_mode is None or self.engine is None:
            return None

        if self.render_mode == "ansi":
            return render_ansi(self.engine)
        elif self.render_mode == "human":
            print(render_ansi(self.engine))
            return None
        elif self.render_mode == "rgb_array":
            return render_rgb_array(self.engine)

        return None

    def close(self) -> None:
        """Clean up environment resources"""
        pass

    def get_state(self) -> Dict[str, Any]:
        """
        Get full internal state for debugging

        Returns:
            Dictionary with the engine snapshot and episode counters
        """
        if self.engine is None:
            return {}

        return {
            "race": self.engine.snapshot().to_dict(),
            "step_count": self.step_count,
            "episode_crashes": self.episode_crashes,
        }


def make_vec_env(
    num_envs: int = 4,
    **env_kwargs
) -> gym.vector.VectorEnv:
    """
    Create a vectorized environment for parallel training

    Args:
        num_envs: Number of parallel environments
        **env_kwargs: Additional arguments passed to VectorRacerEnv

    Returns:
        Vectorized environment
    """
    def make_env():
        return VectorRacerEnv(**env_kwargs)

    return gym.vector.SyncVectorEnv([make_env for _ in range(num_envs)])


def make_async_vec_env(
    num_envs: int = 4,
    **env_kwargs
) -> gym.vector.VectorEnv:
    """
    Create an asynchronous vectorized environment for parallel training

    Note: Requires environments to be picklable

    Args:
        num_envs: Number of parallel environments
        **env_kwargs: Additional arguments passed to VectorRacerEnv

    Returns:
        Asynchronous vectorized environment
    """
    def make_env():
        return VectorRacerEnv(**env_kwargs)

    return gym.vector.AsyncVectorEnv([make_env for _ in range(num_envs)])


# Register environment with gymnasium
gym.register(
    id="VectorRacer-v0",
    entry_point="vector_racer.environment.racing_env:VectorRacerEnv",
)
