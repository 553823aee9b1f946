"""
TapeGrad: a scalar reverse-mode autograd engine and the small feed-forward networks built on it.
"""

from tapegrad.engine import (
    Value,
    add,
    multiply,
    negate,
    subtract,
    power,
    tanh,
    topological_sort,
    backward,
    zero_grad,
    has_nan,
    visualize_graph,
)
from tapegrad.config import set_training_config, get_training_config, reset_training_config
from tapegrad.exceptions import TapegradError, DimensionMismatchError, EmptyBatchError
from tapegrad.nn import Module, Neuron, Layer, MLP

__all__ = [
    'Value',
    'add',
    'multiply',
    'negate',
    'subtract',
    'power',
    'tanh',
    'topological_sort',
    'backward',
    'zero_grad',
    'has_nan',
    'visualize_graph',
    'set_training_config',
    'get_training_config',
    'reset_training_config',
    'TapegradError',
    'DimensionMismatchError',
    'EmptyBatchError',
    'Module',
    'Neuron',
    'Layer',
    'MLP',
]
