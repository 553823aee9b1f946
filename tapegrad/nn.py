"""
Feed-forward networks built on the scalar engine: Neuron, Layer and MLP.
"""

import logging
import numpy as np
from typing import List, Optional, Sequence, Union

from tapegrad.config import get_training_config
from tapegrad.engine import Value, add, backward, multiply, power, subtract, zero_grad
from tapegrad.exceptions import DimensionMismatchError, EmptyBatchError

logger = logging.getLogger(__name__)

Input = Union[Value, int, float]


def _default_rng() -> np.random.Generator:
    return np.random.default_rng(get_training_config()['seed'])


class Module:
    """Base class for anything that owns trainable parameters."""

    def parameters(self) -> List[Value]:
        return []

    def zero_grad(self):
        for p in self.parameters():
            p.grad = 0.0


class Neuron(Module):
    """
    A weighted sum of its inputs plus a bias, optionally squashed by tanh.

    Args:
        nin (int): Number of inputs, i.e. number of weights
        with_activation (bool): Apply tanh to the weighted sum
        rng (np.random.Generator, optional): Source of the initial weights and
            bias. Defaults to a generator seeded from the training config.
    """

    def __init__(self, nin: int, with_activation: bool = True, rng: Optional[np.random.Generator] = None):
        rng = rng if rng is not None else _default_rng()
        cfg = get_training_config()
        low, high = cfg['init_low'], cfg['init_high']

        self.bias = Value(rng.uniform(low, high), label='b')
        self.weights = [Value(rng.uniform(low, high), label=f'w{i}') for i in range(nin)]
        self.with_activation = with_activation

    def forward(self, inputs: Sequence[Input]) -> Value:
        if len(inputs) != len(self.weights):
            raise DimensionMismatchError(len(self.weights), len(inputs))

        act = self.bias
        for w, x in zip(self.weights, inputs):
            act = add(act, multiply(w, x))
        return act.tanh() if self.with_activation else act

    __call__ = forward

    def parameters(self) -> List[Value]:
        return [self.bias] + self.weights

    def __repr__(self):
        return f"{'Tanh' if self.with_activation else 'Linear'}Neuron({len(self.weights)})"


class Layer(Module):
    """A set of independent neurons that all read the same inputs."""

    def __init__(
        self,
        nin: int,
        nout: int,
        with_activation: bool = True,
        rng: Optional[np.random.Generator] = None,
        label: str = ''
    ):
        rng = rng if rng is not None else _default_rng()
        self.neurons = [Neuron(nin, with_activation, rng) for _ in range(nout)]
        self.nin = nin
        self.nout = nout
        self.label = label

    def forward(self, inputs: Sequence[Input]) -> List[Value]:
        return [n.forward(inputs) for n in self.neurons]

    __call__ = forward

    def parameters(self) -> List[Value]:
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self):
        return f"Layer {self.label} inputs: {self.nin}, outputs: {self.nout}"


class MLP(Module):
    """
    Multi-layer perceptron: an ordered chain of layers.

    Every hidden layer uses tanh. The output layer is linear unless
    output_activation is set, so regression targets are not bounded to (-1, 1).

    Example:
        MLP(1, [3, 3, 1]) maps one input through two hidden layers of three
        neurons to a single output.
    """

    def __init__(
        self,
        nin: int,
        nouts: List[int],
        output_activation: bool = False,
        rng: Optional[np.random.Generator] = None
    ):
        if not nouts:
            raise ValueError("an MLP needs at least one layer")
        sizes = [nin] + list(nouts)
        if any(s <= 0 for s in sizes):
            raise ValueError(f"layer sizes must be positive, got {sizes}")

        rng = rng if rng is not None else _default_rng()
        last = len(nouts) - 1
        self.layers = [
            Layer(
                sizes[i],
                sizes[i + 1],
                with_activation=output_activation if i == last else True,
                rng=rng,
                label=f"Layer{i}",
            )
            for i in range(len(nouts))
        ]
        logger.debug("created MLP %s", " x ".join(str(s) for s in sizes))

    def forward(self, inputs: Sequence[Input]) -> List[Value]:
        outputs = list(inputs)
        for layer in self.layers:
            outputs = layer.forward(outputs)
        return outputs

    __call__ = forward

    def parameters(self) -> List[Value]:
        return [p for layer in self.layers for p in layer.parameters()]

    @staticmethod
    def loss(truth: Sequence[Input], preds: Sequence[Value]) -> Value:
        """Squared error of one example, summed over output positions."""
        if len(truth) != len(preds):
            raise DimensionMismatchError(len(truth), len(preds), 'predictions')

        loss = Value(0.0, label='loss')
        for y, y_pred in zip(truth, preds):
            loss = add(loss, power(subtract(y, y_pred), 2))
        return loss

    def total_loss(self, xs: Sequence[Sequence[Input]], ys: Sequence[Sequence[Input]]) -> Value:
        """
        Mean per-example loss over a batch, as a fresh graph rooted at the
        current parameters.

        Args:
            xs: One input sequence per example.
            ys: One target sequence per example.

        Returns:
            Value: The batch loss node.

        Raises:
            EmptyBatchError: If the batch has no examples.
            DimensionMismatchError: If xs and ys differ in length, or any
                example has the wrong number of inputs or targets.
        """
        if len(xs) != len(ys):
            raise DimensionMismatchError(len(xs), len(ys), 'target rows')
        if not xs:
            raise EmptyBatchError()

        total = None
        for x, y in zip(xs, ys):
            example = self.loss(y, self.forward(x))
            total = example if total is None else add(total, example)
        total.set_label('total_loss')

        return multiply(total, Value(1.0 / len(xs), label='1/n'))

    def update_weights(self, step_size: float):
        for p in self.parameters():
            p.adjust(-step_size * p.grad)

    def training_step(self, loss: Value, step_size: Optional[float] = None) -> float:
        """
        One gradient-descent step on a loss built by total_loss.

        Resets every gradient upstream of loss, backpropagates from it and
        moves each parameter against its gradient.

        Returns:
            float: The loss value the step was taken on.
        """
        if step_size is None:
            step_size = get_training_config()['step_size']

        zero_grad(loss)
        loss.set_gradient(1.0)
        backward(loss)
        self.update_weights(step_size)
        return loss.data

    def train(
        self,
        xs: Sequence[Sequence[Input]],
        ys: Sequence[Sequence[Input]],
        steps: int,
        step_size: Optional[float] = None
    ) -> List[float]:
        """
        Run a fixed number of training steps over the whole batch.

        Returns:
            list: The loss recorded before each step's update.
        """
        log_every = get_training_config()['log_every']
        losses = []
        for i in range(steps):
            loss = self.training_step(self.total_loss(xs, ys), step_size)
            losses.append(loss)
            logger.debug("Loss %d: %f", i, loss)
            if np.isnan(loss):
                logger.warning("loss became NaN at step %d", i)
            elif i % log_every == 0:
                logger.info("Loss %d: %f", i, loss)
        return losses

    def __repr__(self):
        return f"MLP of [{', '.join(str(layer) for layer in self.layers)}]"
