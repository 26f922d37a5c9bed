"""
Training Configuration for Vector Racer ML

Dataclass-based configuration for PPO training against a scripted opponent.
Every field can be set from code, a JSON file or the training CLI.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Dict, Any, List, Optional
import json
from pathlib import Path

from ..environment.config import RaceConfig


@dataclass
class TrainingConfig:
    """
    Configuration for PPO training on the Vector Racer Environment

    Attributes:
        total_timesteps: Total number of agent turns for training
        n_envs: Number of parallel environments for training
        learning_rate: Learning rate for the optimizer
        n_steps: Number of steps per environment per update
        batch_size: Minibatch size for PPO updates
        n_epochs: Number of epochs for each PPO update
        gamma: Discount factor for rewards
        gae_lambda: GAE lambda for advantage estimation
        clip_range: PPO clipping parameter
        ent_coef: Entropy coefficient for exploration
        vf_coef: Value function coefficient in loss
        max_grad_norm: Maximum gradient norm for clipping

        # Network architecture
        net_arch: Hidden layer sizes shared by policy and value networks
        activation_fn: Activation function name ('tanh', 'relu', 'elu')

        # Race and reward settings
        max_episode_steps: Maximum agent turns per race
        opponent: Scripted driver of car 2 ('greedy' or 'random')
        laps_to_win: Laps needed to win
        reward_progress_weight: Weight for progress around the track
        reward_crash_penalty: Penalty for crashing
        reward_lap_complete: Reward for completing a lap
        reward_win: Reward for winning the race
        reward_loss: Penalty when the opponent wins
        reward_time_penalty: Penalty per turn

        # Saving and logging
        save_freq: Save checkpoint every N timesteps
        eval_freq: Evaluate model every N timesteps
        n_eval_episodes: Number of races per evaluation
        tensorboard_log: Directory for TensorBoard logs
        model_save_path: Directory for model checkpoints

        # Experiment settings
        seed: Random seed for reproducibility
        device: Device for training ('auto', 'cpu', 'cuda')
        verbose: Verbosity level (0=none, 1=info, 2=debug)
    """
    # PPO hyperparameters
    total_timesteps: int = 200_000
    n_envs: int = 8
    learning_rate: float = 3e-4
    n_steps: int = 512
    batch_size: int = 128
    n_epochs: int = 10
    gamma: float = 0.98
    gae_lambda: float = 0.95
    clip_range: float = 0.2
    ent_coef: float = 0.02
    vf_coef: float = 0.5
    max_grad_norm: float = 0.5

    # Network architecture
    net_arch: List[int] = field(default_factory=lambda: [128, 128])
    activation_fn: str = "tanh"

    # Race and reward settings
    max_episode_steps: int = 300
    opponent: str = "greedy"
    laps_to_win: int = 1
    reward_progress_weight: float = 1.0
    reward_crash_penalty: float = -2.0
    reward_lap_complete: float = 20.0
    reward_win: float = 50.0
    reward_loss: float = -20.0
    reward_time_penalty: float = -0.05

    # Saving and logging
    save_freq: int = 20_000
    eval_freq: int = 10_000
    n_eval_episodes: int = 10
    tensorboard_log: str = "./logs/tensorboard"
    model_save_path: str = "./models"

    # Experiment settings
    seed: Optional[int] = None
    device: str = "auto"
    verbose: int = 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "TrainingConfig":
        """Create config from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in config_dict.items() if k in known})

    def save(self, filepath: str) -> None:
        """Save config to JSON file"""
        path = Path(filepath)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: str) -> "TrainingConfig":
        """Load config from JSON file"""
        with open(filepath, "r") as f:
            return cls.from_dict(json.load(f))

    def get_ppo_params(self) -> Dict[str, Any]:
        """Get parameters for PPO model initialization"""
        return {
            "learning_rate": self.learning_rate,
            "n_steps": self.n_steps,
            "batch_size": self.batch_size,
            "n_epochs": self.n_epochs,
            "gamma": self.gamma,
            "gae_lambda": self.gae_lambda,
            "clip_range": self.clip_range,
            "ent_coef": self.ent_coef,
            "vf_coef": self.vf_coef,
            "max_grad_norm": self.max_grad_norm,
            "verbose": self.verbose,
            "device": self.device,
            "seed": self.seed,
        }

    def get_env_params(self) -> Dict[str, Any]:
        """Get keyword arguments for VectorRacerEnv"""
        return {
            "max_steps": self.max_episode_steps,
            "opponent": self.opponent,
            "race_config": RaceConfig(laps_to_win=self.laps_to_win),
            "reward_progress_weight": self.reward_progress_weight,
            "reward_crash_penalty": self.reward_crash_penalty,
            "reward_lap_complete": self.reward_lap_complete,
            "reward_win": self.reward_win,
            "reward_loss": self.reward_loss,
            "reward_time_penalty": self.reward_time_penalty,
        }


# Predefined configurations for different training scenarios

def get_quick_test_config() -> TrainingConfig:
    """Smoke-test run against a random opponent"""
    return TrainingConfig(
        total_timesteps=5_000,
        n_envs=2,
        n_steps=256,
        batch_size=64,
        opponent="random",
        save_freq=2_500,
        eval_freq=2_500,
        n_eval_episodes=3,
        verbose=2,
    )


def get_development_config() -> TrainingConfig:
    """Moderate run against the greedy opponent"""
    return TrainingConfig(
        total_timesteps=50_000,
        n_envs=4,
    )


def get_production_config() -> TrainingConfig:
    """Full run: longer races, two laps"""
    return TrainingConfig(
        total_timesteps=1_000_000,
        n_envs=8,
        laps_to_win=2,
        max_episode_steps=500,
        save_freq=50_000,
        eval_freq=25_000,
        n_eval_episodes=20,
    )


PRESETS = {
    "quick": get_quick_test_config,
    "dev": get_development_config,
    "prod": get_production_config,
}
