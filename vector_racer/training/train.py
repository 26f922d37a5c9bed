"""
Main Training Script for Vector Racer ML

CLI for training a PPO agent to race car 1 against a scripted opponent.
Supports presets, JSON configs, checkpoints and TensorBoard logging.
"""

import argparse
import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import torch
from stable_baselines3 import PPO
from stable_baselines3.common.utils import set_random_seed
from stable_baselines3.common.vec_env import DummyVecEnv, SubprocVecEnv, VecMonitor

from ..environment.racing_env import VectorRacerEnv
from .callbacks import create_training_callbacks
from .config import PRESETS, TrainingConfig


ACTIVATION_FNS = {
    "tanh": torch.nn.Tanh,
    "relu": torch.nn.ReLU,
    "elu": torch.nn.ELU,
    "leaky_relu": torch.nn.LeakyReLU,
}


def make_env(rank: int, seed: int = 0, **env_kwargs):
    """
    Create a function that returns a new environment instance.

    Args:
        rank: Environment rank (for seeding)
        seed: Base random seed
        **env_kwargs: Environment arguments

    Returns:
        Function that creates the environment
    """
    def _init():
        env = VectorRacerEnv(**env_kwargs)
        env.reset(seed=seed + rank)
        return env
    set_random_seed(seed)
    return _init


def create_vec_env(
    n_envs: int,
    seed: Optional[int] = None,
    use_subprocess: bool = True,
    **env_kwargs,
) -> VecMonitor:
    """
    Create a vectorized environment for training.

    Args:
        n_envs: Number of parallel environments
        seed: Random seed
        use_subprocess: Use SubprocVecEnv (faster but more memory)
        **env_kwargs: Environment arguments

    Returns:
        Vectorized environment wrapped with VecMonitor
    """
    seed = seed if seed is not None else int(time.time())
    env_fns = [make_env(i, seed, **env_kwargs) for i in range(n_envs)]

    if use_subprocess and n_envs > 1:
        vec_env = SubprocVecEnv(env_fns)
    else:
        vec_env = DummyVecEnv(env_fns)

    # VecMonitor adds the "episode" entry the metric callbacks read
    return VecMonitor(vec_env)


def get_policy_kwargs(config: TrainingConfig) -> dict:
    """
    Get policy network configuration.

    Unknown activation names fall back to tanh.
    """
    return {
        "net_arch": dict(pi=config.net_arch, vf=config.net_arch),
        "activation_fn": ACTIVATION_FNS.get(config.activation_fn, torch.nn.Tanh),
    }


def train(
    config: TrainingConfig,
    experiment_name: Optional[str] = None,
    resume_from: Optional[str] = None,
) -> PPO:
    """
    Train a PPO model on the vector racer environment.

    Args:
        config: Training configuration
        experiment_name: Name for this experiment (for logging)
        resume_from: Path to model to resume training from

    Returns:
        Trained PPO model
    """
    if experiment_name is None:
        experiment_name = f"vector_racer_ppo_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    base_path = Path(config.model_save_path) / experiment_name
    base_path.mkdir(parents=True, exist_ok=True)
    tensorboard_path = Path(config.tensorboard_log) / experiment_name

    print("=" * 60)
    print("VECTOR RACER ML - TRAINING")
    print("=" * 60)
    print(f"Experiment: {experiment_name}")
    print(f"Model path: {base_path}")
    print(f"TensorBoard: {tensorboard_path}")
    print(f"Opponent: {config.opponent}, laps to win: {config.laps_to_win}")
    print()

    config.save(str(base_path / "config.json"))

    env_kwargs = config.get_env_params()
    print(f"Creating {config.n_envs} parallel environments...")
    train_env = create_vec_env(
        n_envs=config.n_envs,
        seed=config.seed,
        use_subprocess=config.n_envs > 1,
        **env_kwargs,
    )
    eval_env = create_vec_env(
        n_envs=1,
        seed=(config.seed or 0) + 1000,
        use_subprocess=False,
        **env_kwargs,
    )
    print(f"Observation space: {train_env.observation_space}")
    print(f"Action space: {train_env.action_space}")

    if resume_from:
        print(f"\nResuming training from: {resume_from}")
        model = PPO.load(
            resume_from,
            env=train_env,
            device=config.device,
            tensorboard_log=str(tensorboard_path),
        )
    else:
        print("\nCreating new PPO model...")
        model = PPO(
            policy="MlpPolicy",
            env=train_env,
            policy_kwargs=get_policy_kwargs(config),
            tensorboard_log=str(tensorboard_path),
            **config.get_ppo_params(),
        )

    print(f"  Network: {config.net_arch} ({config.activation_fn})")
    print(f"  Device: {model.device}")
    print(f"  Steps per update: {config.n_steps * config.n_envs:,}")
    print()

    callbacks = create_training_callbacks(
        model_save_path=str(base_path),
        eval_env=eval_env,
        # Callback frequencies count vectorized calls, not single steps
        save_freq=config.save_freq // config.n_envs,
        eval_freq=config.eval_freq // config.n_envs,
        n_eval_episodes=config.n_eval_episodes,
        log_freq=1000,
        total_timesteps=config.total_timesteps,
        verbose=config.verbose,
    )

    print("Starting training...")
    print("-" * 60)
    start_time = time.time()

    try:
        model.learn(
            total_timesteps=config.total_timesteps,
            callback=callbacks,
            reset_num_timesteps=resume_from is None,
        )
    except KeyboardInterrupt:
        print("\n\nTraining interrupted by user.")
    finally:
        final_model_path = base_path / "final_model"
        model.save(str(final_model_path))
        print(f"\nFinal model saved to: {final_model_path}")
        train_env.close()
        eval_env.close()

    elapsed = max(time.time() - start_time, 1e-6)
    print(f"\nTraining completed in {elapsed / 60:.1f} minutes")
    print(f"Timesteps per second: {model.num_timesteps / elapsed:.0f}")

    return model


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Train a PPO agent for Vector Racer",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--preset", type=str, choices=sorted(PRESETS),
                        help="Preset configuration (quick, dev, prod)")
    parser.add_argument("--config", type=str, help="Path to configuration JSON file")
    parser.add_argument("--timesteps", "-t", type=int, help="Total training timesteps")
    parser.add_argument("--n-envs", type=int, help="Number of parallel environments")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--learning-rate", "--lr", type=float, help="Learning rate")
    parser.add_argument("--batch-size", type=int, help="Batch size for PPO updates")
    parser.add_argument("--ent-coef", type=float, help="Entropy coefficient")
    parser.add_argument("--net-arch", type=str, help="Hidden layers, e.g. '128,128'")
    parser.add_argument("--opponent", type=str, choices=["greedy", "random"], help="Scripted opponent")
    parser.add_argument("--laps", type=int, help="Laps needed to win")
    parser.add_argument("--model-path", type=str, help="Directory to save models")
    parser.add_argument("--tensorboard-log", type=str, help="TensorBoard log directory")
    parser.add_argument("--experiment-name", "-n", type=str, help="Experiment name")
    parser.add_argument("--resume", type=str, help="Path to model to resume training from")
    parser.add_argument("--verbose", "-v", type=int, choices=[0, 1, 2], help="Verbosity level")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> TrainingConfig:
    """Start from a JSON file, a preset or defaults, then apply CLI overrides"""
    if args.config:
        print(f"Loading config from: {args.config}")
        config = TrainingConfig.load(args.config)
    elif args.preset:
        print(f"Using preset configuration: {args.preset}")
        config = PRESETS[args.preset]()
    else:
        config = TrainingConfig()

    overrides = {
        "total_timesteps": args.timesteps,
        "n_envs": args.n_envs,
        "seed": args.seed,
        "learning_rate": args.learning_rate,
        "batch_size": args.batch_size,
        "ent_coef": args.ent_coef,
        "opponent": args.opponent,
        "laps_to_win": args.laps,
        "model_save_path": args.model_path,
        "tensorboard_log": args.tensorboard_log,
        "verbose": args.verbose,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)
    if args.net_arch is not None:
        config.net_arch = [int(x) for x in args.net_arch.split(",")]
    return config


def main(argv=None):
    """Main entry point for training"""
    args = parse_args(argv)
    config = build_config(args)

    train(
        config=config,
        experiment_name=args.experiment_name,
        resume_from=args.resume,
    )

    print("\nTraining complete!")
    print("To evaluate: vector-racer-evaluate models/<experiment>/final_model")
    print(f"To view TensorBoard: tensorboard --logdir {config.tensorboard_log}")


if __name__ == "__main__":
    main()
