"""
Model Evaluation Utilities for Vector Racer ML

Load trained agents, race them against the scripted opponents and report
win rates, crash counts and race lengths.
"""

import argparse
import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from stable_baselines3 import PPO

from ..environment.racing_env import VectorRacerEnv


@dataclass
class EpisodeResult:
    """Results from a single evaluation race"""
    reward: float
    turns: int
    won: bool
    finished: bool
    laps: int
    opponent_laps: int
    crashes: int
    progress: float
    final_position: Tuple[int, int]


@dataclass
class EvaluationResults:
    """Aggregated results from evaluation races"""
    n_episodes: int
    mean_reward: float
    std_reward: float
    mean_turns: float
    win_rate: float
    loss_rate: float
    n_wins: int
    mean_crashes: float
    total_crashes: int
    mean_progress: float
    mean_turns_to_win: Optional[float]
    evaluation_time: float
    episodes: List[EpisodeResult]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        lines = [
            "=" * 60,
            "EVALUATION RESULTS",
            "=" * 60,
            f"Races: {self.n_episodes}",
            f"Evaluation time: {self.evaluation_time:.1f}s",
            "",
            "Performance:",
            f"  Mean reward: {self.mean_reward:.2f} (+/- {self.std_reward:.2f})",
            f"  Mean turns: {self.mean_turns:.1f}",
            f"  Mean progress: {self.mean_progress:.2f} rad",
            "",
            "Results:",
            f"  Wins: {self.n_wins}/{self.n_episodes} ({self.win_rate:.1%})",
            f"  Losses: {self.loss_rate:.1%}",
        ]
        if self.mean_turns_to_win is not None:
            lines.append(f"  Mean turns to win: {self.mean_turns_to_win:.1f}")
        lines.extend([
            "",
            "Crashes:",
            f"  Total crashes: {self.total_crashes}",
            f"  Mean per race: {self.mean_crashes:.2f}",
            "=" * 60,
        ])
        return "\n".join(lines)


def load_model(model_path: str, device: str = "auto") -> PPO:
    """
    Load a trained PPO model.

    Args:
        model_path: Path to the saved model (with or without .zip)
        device: Device to load model on ('auto', 'cpu', 'cuda')

    Returns:
        Loaded PPO model

    Raises:
        FileNotFoundError: If neither the path nor path + .zip exists
    """
    path = Path(model_path)
    if path.suffix != ".zip" and path.with_suffix(".zip").exists():
        path = path.with_suffix(".zip")
    if not path.exists():
        raise FileNotFoundError(f"Model not found: {model_path}")
    return PPO.load(str(path), device=device)


def evaluate_episode(
    model: PPO,
    env: VectorRacerEnv,
    deterministic: bool = True,
    render: bool = False,
    seed: Optional[int] = None,
) -> EpisodeResult:
    """
    Run a single evaluation race.

    Args:
        model: Trained PPO model (anything with a ``predict`` method)
        env: Vector racer environment
        deterministic: Use deterministic actions (no exploration)
        render: Whether to render each turn
        seed: Seed for the opponent's random choices

    Returns:
        Episode result
    """
    obs, info = env.reset(seed=seed)
    done = False
    total_reward = 0.0

    while not done:
        action, _ = model.predict(obs, deterministic=deterministic)
        obs, reward, terminated, truncated, info = env.step(action)
        done = terminated or truncated
        total_reward += reward
        if render:
            env.render()

    return EpisodeResult(
        reward=total_reward,
        turns=info["step"],
        won=info["won"],
        finished=info["race_finished"],
        laps=info["laps"],
        opponent_laps=info["opponent_laps"],
        crashes=info["episode_crashes"],
        progress=info["episode_progress"],
        final_position=tuple(info["position"]),
    )


def summarize(episodes: List[EpisodeResult], evaluation_time: float = 0.0) -> EvaluationResults:
    """Aggregate individual races into EvaluationResults"""
    n = len(episodes)
    if n == 0:
        raise ValueError("Cannot summarize an evaluation with no episodes")
    rewards = [ep.reward for ep in episodes]
    wins = [ep for ep in episodes if ep.won]
    losses = [ep for ep in episodes if ep.finished and not ep.won]
    crashes = [ep.crashes for ep in episodes]

    return EvaluationResults(
        n_episodes=n,
        mean_reward=float(np.mean(rewards)),
        std_reward=float(np.std(rewards)),
        mean_turns=float(np.mean([ep.turns for ep in episodes])),
        win_rate=len(wins) / n,
        loss_rate=len(losses) / n,
        n_wins=len(wins),
        mean_crashes=float(np.mean(crashes)),
        total_crashes=int(sum(crashes)),
        mean_progress=float(np.mean([ep.progress for ep in episodes])),
        mean_turns_to_win=float(np.mean([ep.turns for ep in wins])) if wins else None,
        evaluation_time=evaluation_time,
        episodes=episodes,
    )


def evaluate_model(
    model: PPO,
    n_episodes: int = 10,
    deterministic: bool = True,
    render: bool = False,
    verbose: int = 1,
    env_kwargs: Optional[Dict[str, Any]] = None,
    seed: int = 0,
) -> EvaluationResults:
    """
    Evaluate a trained model over multiple races.

    Args:
        model: Trained PPO model
        n_episodes: Number of races
        deterministic: Use deterministic actions
        render: Print the track every turn
        verbose: Verbosity level
        env_kwargs: Additional environment arguments
        seed: Base seed; race i uses seed + i

    Returns:
        Aggregated evaluation results
    """
    env = VectorRacerEnv(render_mode="human" if render else None, **(env_kwargs or {}))

    episodes: List[EpisodeResult] = []
    start_time = time.time()
    try:
        for i in range(n_episodes):
            if verbose >= 1:
                print(f"Evaluating race {i + 1}/{n_episodes}...", end="\r")
            result = evaluate_episode(model, env, deterministic, render, seed=seed + i)
            episodes.append(result)
            if verbose >= 2:
                status = "WIN" if result.won else ("LOSS" if result.finished else "---")
                print(f"Race {i + 1}: reward={result.reward:.2f}, turns={result.turns}, "
                      f"crashes={result.crashes} {status}")
    finally:
        env.close()

    results = summarize(episodes, time.time() - start_time)
    if verbose >= 1:
        print()
        print(results)
    return results


def compare_models(
    model_paths: List[str],
    n_episodes: int = 10,
    deterministic: bool = True,
    verbose: int = 1,
    env_kwargs: Optional[Dict[str, Any]] = None,
) -> Dict[str, EvaluationResults]:
    """
    Race several trained models against the same opponent.

    Models that fail to load are reported and skipped.

    Returns:
        Dictionary mapping model path to evaluation results
    """
    results = {}
    for path in model_paths:
        if verbose >= 1:
            print(f"\nEvaluating model: {path}")
            print("-" * 40)
        try:
            model = load_model(path)
        except FileNotFoundError as e:
            print(f"Skipping {path}: {e}")
            continue
        results[path] = evaluate_model(
            model,
            n_episodes=n_episodes,
            deterministic=deterministic,
            verbose=verbose,
            env_kwargs=env_kwargs,
        )

    if verbose >= 1 and len(results) > 1:
        print("\n" + "=" * 60)
        print("MODEL COMPARISON")
        print("=" * 60)
        print(f"{'Model':<30} {'Win Rate':>10} {'Avg Reward':>12} {'Crashes':>8}")
        print("-" * 62)
        for path, result in sorted(results.items(), key=lambda item: -item[1].win_rate):
            name = Path(path).stem[:28]
            print(f"{name:<30} {result.win_rate:>10.1%} {result.mean_reward:>12.2f} {result.mean_crashes:>8.2f}")
        print("=" * 60)

    return results


def save_evaluation_results(results: EvaluationResults, filepath: str) -> None:
    """Save evaluation results to a JSON file"""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(results.to_dict(), f, indent=2)
    print(f"Results saved to: {path}")


def watch_model(
    model_path: str,
    n_episodes: int = 1,
    deterministic: bool = True,
    delay: float = 0.5,
) -> None:
    """
    Watch a trained model race, printing the track after every turn.

    Args:
        model_path: Path to the model file
        n_episodes: Number of races to watch
        deterministic: Use deterministic actions
        delay: Pause between turns (seconds)
    """
    model = load_model(model_path)
    env = VectorRacerEnv(render_mode="ansi")

    for episode in range(n_episodes):
        print(f"\n{'=' * 40}")
        print(f"Race {episode + 1}/{n_episodes}")
        print("=" * 40)

        obs, info = env.reset(seed=episode)
        done = False
        total_reward = 0.0
        while not done:
            action, _ = model.predict(obs, deterministic=deterministic)
            obs, reward, terminated, truncated, info = env.step(action)
            done = terminated or truncated
            total_reward += reward
            print(env.render())
            print(f"Turn: {info['step']}, Reward: {total_reward:.2f}")
            if delay > 0:
                time.sleep(delay)

        outcome = "won" if info["won"] else ("lost" if info["race_finished"] else "ran out of turns")
        print(f"\nRace over: agent {outcome} after {info['step']} turns, {info['episode_crashes']} crashes")

    env.close()


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def main(argv=None):
    """CLI entry point for model evaluation"""
    parser = argparse.ArgumentParser(description="Evaluate trained vector racer models")
    parser.add_argument("model_path", type=str, nargs="+", help="Path(s) to trained model(s)")
    parser.add_argument("-n", "--n-episodes", type=_positive_int, default=10, help="Number of races")
    parser.add_argument("--opponent", type=str, choices=["greedy", "random"], default="greedy")
    parser.add_argument("--stochastic", action="store_true", help="Sample actions instead of argmax")
    parser.add_argument("--render", action="store_true", help="Print the track every turn")
    parser.add_argument("--watch", action="store_true", help="Watch mode with text rendering")
    parser.add_argument("-o", "--output", type=str, help="Save results to JSON file")
    parser.add_argument("-v", "--verbose", type=int, default=1, help="Verbosity level (0-2)")
    args = parser.parse_args(argv)

    env_kwargs = {"opponent": args.opponent}

    if args.watch:
        watch_model(args.model_path[0], n_episodes=args.n_episodes, deterministic=not args.stochastic)
    elif len(args.model_path) > 1:
        compare_models(
            args.model_path,
            n_episodes=args.n_episodes,
            deterministic=not args.stochastic,
            verbose=args.verbose,
            env_kwargs=env_kwargs,
        )
    else:
        results = evaluate_model(
            load_model(args.model_path[0]),
            n_episodes=args.n_episodes,
            deterministic=not args.stochastic,
            render=args.render,
            verbose=args.verbose,
            env_kwargs=env_kwargs,
        )
        if args.output:
            save_evaluation_results(results, args.output)


if __name__ == "__main__":
    main()
