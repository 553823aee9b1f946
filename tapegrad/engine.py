import itertools
import logging
import os
import numpy as np
import graphviz
from typing import Union, Tuple, Dict, List, Optional, Callable

logger = logging.getLogger(__name__)

# Process-wide source of node identities
_node_ids = itertools.count()


def _float_pow(base: float, exponent: float) -> float:
    """
    Raise base to exponent in float64, following IEEE semantics.

    A negative base with a non-integer exponent gives NaN and zero raised to a
    negative power gives inf; neither raises.
    """
    with np.errstate(invalid='ignore', divide='ignore', over='ignore'):
        return float(np.power(np.float64(base), np.float64(exponent)))


class Value:
    """
    A scalar node in the computational graph.

    Every arithmetic operation on Values allocates a new Value that records its
    operands in order together with an op tag. backward() later walks these
    records in reverse topological order and accumulates gradients into every
    upstream node.

    Attributes:
        id (int): Identity of the node, unique for the lifetime of the process
        data (float): Current scalar value
        grad (float): Accumulated gradient of the last backward root w.r.t. this node
        label (str): Free-text debug annotation
    """

    def __init__(self, data, _children=(), _op='', label=''):
        """
        Initialize a Value object.

        Args:
            data: The scalar to be stored in the Value object.
            _children (tuple, optional): Operand nodes, in the order the op's gradient rule expects. Defaults to ().
            _op (str, optional): Tag of the operation that produced this Value. Defaults to '' (leaf).
            label (str, optional): A label for the Value. Defaults to ''.
        """
        self.id = next(_node_ids)
        self.data = float(data)
        self.grad = 0.0
        self._prev: Tuple['Value', ...] = tuple(_children)
        self._op = _op
        self.label = label

    @property
    def is_leaf(self) -> bool:
        return not self._op

    def __add__(self, other):
        return add(self, other)

    def __radd__(self, other):
        return add(other, self)

    def __sub__(self, other):
        return subtract(self, other)

    def __rsub__(self, other):
        return subtract(other, self)

    def __mul__(self, other):
        return multiply(self, other)

    def __rmul__(self, other):
        return multiply(other, self)

    def __neg__(self):
        return negate(self)

    def __truediv__(self, other):
        return multiply(self, power(other, -1))

    def __rtruediv__(self, other):
        return multiply(other, power(self, -1))

    def __pow__(self, other):
        return power(self, other)

    def tanh(self):
        """Apply the tanh function to this Value."""
        return tanh(self)

    def backward(self):
        """Perform backpropagation starting from this Value."""
        backward(self)

    def zero_grad(self):
        """Reset the gradient of this Value and everything upstream of it."""
        zero_grad(self)

    def set_gradient(self, gradient: float):
        self.grad = float(gradient)

    def set_label(self, label: str) -> 'Value':
        self.label = label
        return self

    def adjust(self, delta: float):
        """Shift data in place; used for parameter updates."""
        self.data += delta

    def is_nan(self) -> bool:
        return bool(np.isnan(self.data))

    def __repr__(self):
        return f"Value(label={self.label!r}, data={self.data}, grad={self.grad})"


Operand = Union[Value, int, float]


def _lift(x: Operand) -> Value:
    return x if isinstance(x, Value) else Value(x)


def add(a: Operand, b: Operand) -> Value:
    """Return a new node holding a + b."""
    a, b = _lift(a), _lift(b)
    return Value(a.data + b.data, (a, b), '+')


def multiply(a: Operand, b: Operand) -> Value:
    """Return a new node holding a * b."""
    a, b = _lift(a), _lift(b)
    return Value(a.data * b.data, (a, b), '*')


def negate(a: Operand) -> Value:
    return multiply(a, Value(-1.0))


def subtract(a: Operand, b: Operand) -> Value:
    return add(a, negate(b))


def power(base: Operand, exponent: Operand) -> Value:
    """
    Return a new node holding base ** exponent.

    The exponent is recorded as the second operand but is treated as a
    constant: no gradient ever flows into it, even when it is itself the
    result of tracked operations.

    Args:
        base: The Value (or number) being raised.
        exponent: The Value (or number) to raise it to.

    Returns:
        Value: The result of the operation. May hold NaN or inf for inputs
        outside the real domain (e.g. a negative base with a fractional
        exponent); see has_nan.
    """
    base, exponent = _lift(base), _lift(exponent)
    return Value(_float_pow(base.data, exponent.data), (base, exponent), '**')


def tanh(a: Operand) -> Value:
    a = _lift(a)
    return Value(float(np.tanh(a.data)), (a,), 'tanh')


# Gradient rules, keyed by op tag. Each reads out.grad and adds into its operands.

def _add_backward(out: Value):
    a, b = out._prev
    a.grad += out.grad
    b.grad += out.grad


def _mul_backward(out: Value):
    a, b = out._prev
    a.grad += b.data * out.grad
    b.grad += a.data * out.grad


def _pow_backward(out: Value):
    base, exponent = out._prev
    n = exponent.data
    base.grad += n * _float_pow(base.data, n - 1) * out.grad


def _tanh_backward(out: Value):
    (a,) = out._prev
    a.grad += (1 - out.data ** 2) * out.grad


_BACKWARD_RULES: Dict[str, Callable[[Value], None]] = {
    '+': _add_backward,
    '*': _mul_backward,
    '**': _pow_backward,
    'tanh': _tanh_backward,
}


def topological_sort(root: Value) -> List[Value]:
    """
    Order every node reachable from root so that each node comes after all of
    its operands.

    The traversal is a depth-first post-order, deduplicated by node id, so a
    node reachable along several paths appears exactly once. It is iterative
    and therefore safe on graphs deeper than the recursion limit.

    Args:
        root (Value): The node to start from.

    Returns:
        list: Nodes in dependency order, root last.
    """
    topo = []
    visited = set()
    stack = [(root, False)]

    while stack:
        v, expanded = stack.pop()
        if expanded:
            topo.append(v)
            continue
        if v.id in visited:
            continue
        visited.add(v.id)
        stack.append((v, True))
        for child in reversed(v._prev):
            if child.id not in visited:
                stack.append((child, False))

    return topo


def backward(root: Value):
    """
    Seed root's gradient with 1 and propagate it to every upstream node.

    Gradients accumulate additively; call zero_grad first when reusing a graph.
    """
    topo = topological_sort(root)
    logger.debug("backward over %d nodes", len(topo))

    root.grad = 1.0
    for v in reversed(topo):
        if v._op:
            _BACKWARD_RULES[v._op](v)


def zero_grad(root: Value):
    """Set the gradient of every node reachable from root, and only those, to 0."""
    for v in topological_sort(root):
        v.grad = 0.0


def has_nan(root: Value) -> bool:
    """Check whether any node reachable from root holds a NaN value or gradient."""
    return any(v.is_nan() or np.isnan(v.grad) for v in topological_sort(root))


def visualize_graph(root: Value, filename: Optional[str] = None, view: bool = False) -> graphviz.Digraph:
    """
    Visualize the computational graph.

    Builds a digraph with one box per Value (label, data and gradient) and one
    ellipse per operation. When a filename is given the graph is also rendered
    as a PNG under the 'graph' folder.

    Args:
        root (Value): The root node of the computational graph.
        filename (str, optional): Name of the file to render to. Defaults to None (no rendering).
        view (bool, optional): Open the rendered file. Defaults to False.

    Returns:
        graphviz.Digraph: The constructed graph.
    """
    dot = graphviz.Digraph(comment='Computational Graph')
    dot.attr(rankdir='LR')

    for v in topological_sort(root):
        uid = str(v.id)
        label = f"{v.label}\n" if v.label else ""
        label += f"value={v.data:.4f}\ngrad={v.grad:.4f}"
        dot.node(uid, label, shape='box')
        if v._op:
            dot.node(uid + v._op, v._op, shape='ellipse')
            dot.edge(uid + v._op, uid)
            for child in v._prev:
                dot.edge(str(child.id), uid + v._op)

    if filename is not None:
        graph_root = 'graph'
        os.makedirs(graph_root, exist_ok=True)
        dot.render(os.path.join(graph_root, filename), view=view, format='png')

    return dot
