import math

import graphviz
import pytest

from tapegrad.engine import (
    Value,
    add,
    backward,
    has_nan,
    multiply,
    negate,
    power,
    subtract,
    tanh,
    topological_sort,
    visualize_graph,
    zero_grad,
)


def numerical_gradient(f, x, h=1e-6):
    return (f(x + h) - f(x - h)) / (2 * h)


def test_add_passes_gradient_through():
    a, b = Value(2.0), Value(-3.0)
    c = add(a, b)
    backward(c)
    assert c.data == -1.0
    assert a.grad == c.grad == 1.0
    assert b.grad == c.grad


def test_multiply_swaps_operands_into_gradients():
    a, b = Value(2.0), Value(-3.0)
    c = multiply(a, b)
    backward(c)
    assert c.data == -6.0
    assert a.grad == b.data * c.grad
    assert b.grad == a.data * c.grad


def test_tanh_gradient():
    x = Value(0.7)
    y = tanh(x)
    backward(y)
    assert y.data == pytest.approx(math.tanh(0.7))
    assert x.grad == pytest.approx(1 - y.data ** 2)


@pytest.mark.parametrize("base, n", [(3.0, 2), (1.5, 3), (4.0, 0.5), (2.0, -1)])
def test_power_gradient(base, n):
    x = Value(base)
    y = power(x, n)
    backward(y)
    assert y.data == pytest.approx(base ** n)
    assert x.grad == pytest.approx(n * base ** (n - 1))


def test_power_treats_exponent_as_constant():
    e = add(Value(1.0), Value(1.0))
    x = Value(3.0)
    y = power(x, e)
    backward(y)
    assert y._prev == (x, e)
    assert x.grad == pytest.approx(6.0)
    assert e.grad == 0.0


def test_negate_and_subtract():
    a, b = Value(5.0), Value(2.0)
    n = negate(a)
    d = subtract(a, b)
    assert n.data == -5.0
    assert d.data == 3.0
    backward(d)
    assert a.grad == 1.0
    assert b.grad == -1.0


def test_fan_out_accumulates():
    x = Value(3.0)
    y = add(x, x)
    backward(y)
    assert y._prev == (x, x)
    assert x.grad == 2.0

    x = Value(3.0)
    y = multiply(x, x)
    backward(y)
    assert x.grad == 6.0


def test_diamond_graph_matches_finite_differences():
    def f(v):
        a = Value(v)
        b = a * 2
        c = a + 3
        d = (b * c).tanh() + b ** 2 - c / a
        return a, d

    a, d = f(0.8)
    backward(d)
    expected = numerical_gradient(lambda v: f(v)[1].data, 0.8)
    assert a.grad == pytest.approx(expected, rel=1e-5)


def test_operator_overloads():
    x, y = Value(4.0), Value(2.0)
    z = 2 - x / y + 3 * x - (-y)
    assert z.data == pytest.approx(2 - 2 + 12 + 2)
    backward(z)
    assert x.grad == pytest.approx(-1 / 2.0 + 3)
    assert y.grad == pytest.approx(4.0 / 2.0 ** 2 + 1)

    w = 1 / y
    backward(w)
    assert w.data == pytest.approx(0.5)


def test_constructors_do_not_touch_operands():
    a, b = Value(1.5), Value(2.5)
    for op in (add, multiply, subtract, power):
        op(a, b)
    tanh(a)
    negate(b)
    assert (a.data, b.data) == (1.5, 2.5)
    assert (a.grad, b.grad) == (0.0, 0.0)


def test_node_ids_are_unique():
    nodes = [Value(1.0) for _ in range(50)]
    nodes.append(add(nodes[0], nodes[1]))
    assert len({n.id for n in nodes}) == len(nodes)


def test_topological_order_lists_each_node_once_after_its_operands():
    a = Value(1.0, label='a')
    b = Value(2.0, label='b')
    c = a * b
    d = c + a
    e = (d * c).tanh() + d

    topo = topological_sort(e)
    assert topo[-1] is e
    assert len(topo) == len({v.id for v in topo})
    position = {v.id: i for i, v in enumerate(topo)}
    for v in topo:
        for child in v._prev:
            assert position[child.id] < position[v.id]
    assert {a.id, b.id, c.id, d.id} <= set(position)


def test_topological_sort_handles_deep_graphs():
    x = Value(0.0)
    out = x
    for _ in range(5000):
        out = out + 1
    assert len(topological_sort(out)) == 1 + 2 * 5000
    backward(out)
    assert x.grad == 1.0
    assert out.data == 5000.0


def test_zero_grad_resets_only_reachable_nodes():
    a, b = Value(2.0), Value(3.0)
    c = a * b
    unrelated = Value(7.0)
    unrelated.grad = 5.0

    backward(c)
    assert a.grad == 3.0
    zero_grad(c)
    assert (a.grad, b.grad, c.grad) == (0.0, 0.0, 0.0)
    assert unrelated.grad == 5.0


def test_zero_grad_on_shared_subgraph():
    x = Value(1.0)
    out = x
    for _ in range(200):
        out = out * out
    out.zero_grad()
    assert x.grad == 0.0


def test_backward_accumulates_without_reset():
    x = Value(2.0)
    y = x * 3
    y.backward()
    y.backward()
    assert x.grad == 6.0


def test_negative_base_fractional_exponent_propagates_nan():
    x = Value(-8.0)
    y = power(x, 0.5) + 1
    assert y.is_nan()
    assert has_nan(y)
    backward(y)
    assert math.isnan(x.grad)


def test_zero_to_negative_power_is_inf():
    y = power(Value(0.0), -1)
    assert math.isinf(y.data)
    assert not has_nan(Value(1.0) + 2)


def test_leaf_accessors():
    p = Value(1.0).set_label('w0')
    assert p.label == 'w0'
    assert p.is_leaf
    p.adjust(-0.25)
    assert p.data == 0.75
    p.set_gradient(3)
    assert p.grad == 3.0
    assert not (p + 1).is_leaf
    assert 'w0' in repr(p)


def test_visualize_graph_builds_digraph():
    a = Value(2.0, label='a')
    out = (a * 3).tanh()
    dot = visualize_graph(out)
    assert isinstance(dot, graphviz.Digraph)
    assert 'tanh' in dot.source
    assert 'a\\nvalue=2.0000' in dot.source or 'a\nvalue=2.0000' in dot.source
