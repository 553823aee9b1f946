from typing import Optional

# Global defaults for network construction and training
_TRAINING_CONFIG = {
    'step_size': 0.01,
    'init_low': -1.0,   # Lower bound for uniform weight/bias initialization
    'init_high': 1.0,   # Upper bound (exclusive)
    'seed': None,       # Seed for the default generator when none is injected
    'log_every': 100,   # Steps between INFO-level progress lines in MLP.train
}


def set_training_config(
    step_size: float = None,
    init_low: float = None,
    init_high: float = None,
    seed: Optional[int] = None,
    log_every: int = None
):
    """
    Configure training defaults globally.

    Args:
        step_size: Learning rate used by MLP.training_step when none is passed
        init_low: Lower bound of the uniform parameter initialization range
        init_high: Upper bound of the uniform parameter initialization range
        seed: Seed for the generator built when a Neuron gets no explicit rng
        log_every: Number of steps between progress reports in MLP.train
    """
    if step_size is not None and step_size <= 0:
        raise ValueError(f"step_size must be positive, got {step_size}")
    if log_every is not None and log_every <= 0:
        raise ValueError(f"log_every must be positive, got {log_every}")

    low = _TRAINING_CONFIG['init_low'] if init_low is None else init_low
    high = _TRAINING_CONFIG['init_high'] if init_high is None else init_high
    if low >= high:
        raise ValueError(f"empty initialization range [{low}, {high})")

    if step_size is not None:
        _TRAINING_CONFIG['step_size'] = float(step_size)
    _TRAINING_CONFIG['init_low'] = float(low)
    _TRAINING_CONFIG['init_high'] = float(high)
    if seed is not None:
        _TRAINING_CONFIG['seed'] = seed
    if log_every is not None:
        _TRAINING_CONFIG['log_every'] = log_every


def get_training_config() -> dict:
    """Get the current training configuration."""
    return _TRAINING_CONFIG.copy()


def reset_training_config():
    """Restore the built-in training defaults."""
    _TRAINING_CONFIG.update(
        step_size=0.01,
        init_low=-1.0,
        init_high=1.0,
        seed=None,
        log_every=100,
    )
