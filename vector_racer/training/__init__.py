"""
Training Module for Vector Racer ML

Tools for training a PPO agent to race against the scripted opponents.

Components:
- config: Training configuration and presets
- train: Main training script and functions
- callbacks: Race metrics, best-model saving and progress output
- evaluate: Model evaluation utilities

Usage:
    # From command line:
    vector-racer-train --preset dev

    # Or programmatically:
    from vector_racer.training import TrainingConfig, train

    config = TrainingConfig(total_timesteps=50_000)
    model = train(config)

Requirements:
    pip install "vector-racer[train]"
"""

# Config module only needs the environment package
from .config import (
    TrainingConfig,
    PRESETS,
    get_quick_test_config,
    get_development_config,
    get_production_config,
)

__all__ = [
    # Config (always available)
    "TrainingConfig",
    "PRESETS",
    "get_quick_test_config",
    "get_development_config",
    "get_production_config",
]

# These modules require stable-baselines3
_SB3_AVAILABLE = False
_SB3_INSTALL_MSG = (
    "Training features require stable-baselines3. "
    "Install with: pip install \"vector-racer[train]\""
)
try:
    import stable_baselines3  # noqa: F401
    _SB3_AVAILABLE = True
except ImportError:
    import warnings
    warnings.warn(_SB3_INSTALL_MSG, ImportWarning)

if _SB3_AVAILABLE:
    from .callbacks import (
        RaceMetricsCallback,
        BestModelCallback,
        ProgressBarCallback,
        create_training_callbacks,
    )

    from .evaluate import (
        EpisodeResult,
        EvaluationResults,
        load_model,
        evaluate_episode,
        evaluate_model,
        summarize,
        compare_models,
        save_evaluation_results,
        watch_model,
    )

    from .train import (
        make_env,
        create_vec_env,
        get_policy_kwargs,
        train,
    )

    __all__.extend([
        # Callbacks
        "RaceMetricsCallback",
        "BestModelCallback",
        "ProgressBarCallback",
        "create_training_callbacks",
        # Evaluate
        "EpisodeResult",
        "EvaluationResults",
        "load_model",
        "evaluate_episode",
        "evaluate_model",
        "summarize",
        "compare_models",
        "save_evaluation_results",
        "watch_model",
        # Train
        "make_env",
        "create_vec_env",
        "get_policy_kwargs",
        "train",
    ])
