"""
Training Callbacks for Vector Racer ML

Callbacks for race statistics (wins, laps, crashes), best-model saving and
console progress.
"""

import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
from stable_baselines3.common.callbacks import (
    BaseCallback,
    CheckpointCallback,
    EvalCallback,
    CallbackList,
)
from stable_baselines3.common.vec_env import VecEnv


class RaceMetricsCallback(BaseCallback):
    """
    Tracks race outcomes reported in the environment info dict

    Tracks:
    - Win rate against the scripted opponent
    - Laps completed
    - Crashes per race
    - Race length in turns
    """

    def __init__(self, log_freq: int = 1000, verbose: int = 1):
        """
        Args:
            log_freq: Log metrics every N calls
            verbose: Verbosity level
        """
        super().__init__(verbose)
        self.log_freq = log_freq

        self.episode_rewards: List[float] = []
        self.episode_lengths: List[int] = []
        self.episode_crashes: List[int] = []
        self.total_episodes = 0
        self.races_won = 0
        self.races_lost = 0
        self.laps_completed = 0
        self.start_time = 0.0

    def _on_training_start(self) -> None:
        self.start_time = time.time()

    def _on_step(self) -> bool:
        for info in self.locals.get("infos", []):
            # VecMonitor adds "episode" when an episode ends
            if "episode" not in info:
                continue
            self.total_episodes += 1
            self.episode_rewards.append(float(info["episode"].get("r", 0)))
            self.episode_lengths.append(int(info["episode"].get("l", 0)))
            self.episode_crashes.append(int(info.get("episode_crashes", 0)))
            self.laps_completed += int(info.get("laps", 0))
            if info.get("won", False):
                self.races_won += 1
            elif info.get("race_finished", False):
                self.races_lost += 1

        if self.n_calls % self.log_freq == 0:
            self._log_metrics()
        return True

    @property
    def win_rate(self) -> float:
        return self.races_won / max(1, self.total_episodes)

    def _log_metrics(self) -> None:
        """Log current metrics to TensorBoard and console"""
        if self.total_episodes == 0:
            return

        recent = slice(-100, None)
        avg_reward = float(np.mean(self.episode_rewards[recent]))
        avg_length = float(np.mean(self.episode_lengths[recent]))
        avg_crashes = float(np.mean(self.episode_crashes[recent]))

        self.logger.record("race/win_rate", self.win_rate)
        self.logger.record("race/races_won", self.races_won)
        self.logger.record("race/races_lost", self.races_lost)
        self.logger.record("race/laps_completed", self.laps_completed)
        self.logger.record("race/avg_crashes_100ep", avg_crashes)
        self.logger.record("race/avg_reward_100ep", avg_reward)
        self.logger.record("race/avg_turns_100ep", avg_length)

        if self.verbose >= 1:
            elapsed = time.time() - self.start_time
            print(f"\n--- Race Metrics @ {self.num_timesteps} steps ({elapsed:.0f}s) ---")
            print(f"Races: {self.total_episodes}, Won: {self.races_won} ({self.win_rate:.1%}), Lost: {self.races_lost}")
            print(f"Avg Reward (100ep): {avg_reward:.2f}, Avg Turns: {avg_length:.0f}, Avg Crashes: {avg_crashes:.2f}")
            print("-" * 50)

    def _on_training_end(self) -> None:
        self._log_metrics()
        if self.verbose >= 1:
            self._print_summary()

    def _print_summary(self) -> None:
        elapsed = max(time.time() - self.start_time, 1e-6)

        print("\n" + "=" * 60)
        print("TRAINING SUMMARY")
        print("=" * 60)
        print(f"Total timesteps: {self.num_timesteps}")
        print(f"Total races: {self.total_episodes}")
        print(f"Training time: {elapsed:.0f}s ({elapsed / 60:.1f} min)")
        print(f"Timesteps/sec: {self.num_timesteps / elapsed:.0f}")
        print(f"Win rate: {self.win_rate:.1%}")
        print(f"Laps completed: {self.laps_completed}")
        if self.episode_crashes:
            print(f"Crashes per race: {np.mean(self.episode_crashes):.2f}")
        print("=" * 60)

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics as dictionary"""
        return {
            "total_timesteps": self.num_timesteps,
            "total_episodes": self.total_episodes,
            "races_won": self.races_won,
            "races_lost": self.races_lost,
            "win_rate": self.win_rate,
            "laps_completed": self.laps_completed,
            "avg_crashes": float(np.mean(self.episode_crashes)) if self.episode_crashes else 0.0,
            "avg_reward_100ep": float(np.mean(self.episode_rewards[-100:])) if self.episode_rewards else 0.0,
        }


class BestModelCallback(BaseCallback):
    """
    Saves the model whenever its win rate improves

    Win rate ties are broken by average reward over the last 100 races.
    """

    def __init__(
        self,
        save_path: str,
        check_freq: int = 1000,
        min_episodes: int = 20,
        verbose: int = 1,
    ):
        """
        Args:
            save_path: Path to save the best model
            check_freq: Check for improvement every N calls
            min_episodes: Minimum races before saving starts
            verbose: Verbosity level
        """
        super().__init__(verbose)
        self.save_path = save_path
        self.check_freq = check_freq
        self.min_episodes = min_episodes

        self.best_win_rate = 0.0
        self.best_avg_reward = float("-inf")
        self.episode_count = 0
        self.win_count = 0
        self.recent_rewards: List[float] = []

    def _on_step(self) -> bool:
        for info in self.locals.get("infos", []):
            if "episode" not in info:
                continue
            self.episode_count += 1
            self.recent_rewards = (self.recent_rewards + [float(info["episode"].get("r", 0))])[-100:]
            if info.get("won", False):
                self.win_count += 1

        if self.n_calls % self.check_freq == 0 and self.episode_count >= self.min_episodes:
            self._check_and_save()
        return True

    def _check_and_save(self) -> None:
        win_rate = self.win_count / max(1, self.episode_count)
        avg_reward = float(np.mean(self.recent_rewards)) if self.recent_rewards else 0.0

        if win_rate > self.best_win_rate:
            reason = f"win rate improved {self.best_win_rate:.2%} -> {win_rate:.2%}"
        elif win_rate == self.best_win_rate and avg_reward > self.best_avg_reward:
            reason = f"avg reward improved {self.best_avg_reward:.2f} -> {avg_reward:.2f}"
        else:
            return

        self.best_win_rate = win_rate
        self.best_avg_reward = avg_reward

        path = Path(self.save_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.model.save(str(path))

        if self.verbose >= 1:
            print(f"\nSaved best model ({reason})")
            print(f"  Path: {path}")


class ProgressBarCallback(BaseCallback):
    """Plain-text progress bar"""

    def __init__(self, total_timesteps: int, bar_length: int = 40):
        super().__init__(verbose=0)
        self.total_timesteps = total_timesteps
        self.bar_length = bar_length
        self.last_percent = 0

    def _on_step(self) -> bool:
        percent = min(100, int(self.num_timesteps / self.total_timesteps * 100))
        if percent > self.last_percent:
            self.last_percent = percent
            filled = int(self.bar_length * percent / 100)
            bar = "=" * filled + "-" * (self.bar_length - filled)
            print(f"\rProgress: [{bar}] {percent}% ({self.num_timesteps}/{self.total_timesteps})", end="")
            if percent == 100:
                print()
        return True


def create_training_callbacks(
    model_save_path: str,
    eval_env: Optional[VecEnv] = None,
    save_freq: int = 10_000,
    eval_freq: int = 10_000,
    n_eval_episodes: int = 10,
    log_freq: int = 1000,
    total_timesteps: int = 200_000,
    verbose: int = 1,
) -> CallbackList:
    """
    Create the list of training callbacks

    Args:
        model_save_path: Directory for saving models
        eval_env: Environment for evaluation (optional)
        save_freq: Save checkpoint every N calls
        eval_freq: Evaluate every N calls
        n_eval_episodes: Number of evaluation races
        log_freq: Log metrics every N calls
        total_timesteps: Total training timesteps (for progress bar)
        verbose: Verbosity level

    Returns:
        CallbackList with all callbacks
    """
    callbacks: List[BaseCallback] = [
        CheckpointCallback(
            save_freq=max(1, save_freq),
            save_path=model_save_path,
            name_prefix="vector_racer",
            verbose=verbose,
        ),
        RaceMetricsCallback(log_freq=log_freq, verbose=verbose),
        BestModelCallback(
            save_path=os.path.join(model_save_path, "best_model"),
            check_freq=log_freq,
            verbose=verbose,
        ),
    ]

    if eval_env is not None:
        callbacks.append(EvalCallback(
            eval_env,
            best_model_save_path=os.path.join(model_save_path, "eval_best"),
            log_path=os.path.join(model_save_path, "eval_logs"),
            eval_freq=max(1, eval_freq),
            n_eval_episodes=n_eval_episodes,
            deterministic=True,
            verbose=verbose,
        ))

    if verbose == 0:
        callbacks.append(ProgressBarCallback(total_timesteps))

    return CallbackList(callbacks)
