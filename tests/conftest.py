import numpy as np
import pytest

from tapegrad.config import reset_training_config


@pytest.fixture(autouse=True)
def _default_config():
    reset_training_config()
    yield
    reset_training_config()


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
