import math

import numpy as np
import pytest

from svdpp.engine.bias import initialize_biases
from svdpp.engine.graph import Edge, RatingGraph
from svdpp.engine.training import (
    aggregate_feedback,
    gradient_step,
    predict_rating,
    run_iteration,
)
from svdpp.models.state import ItemState, SVDPlusPlusConf, UserState


def _initialized(edges, rank=2, seed=42, **extra):
    graph = RatingGraph.from_edges(edges, rank, np.random.default_rng(seed), **extra)
    return initialize_biases(graph)


def test_predict_rating_is_clipped():
    user = UserState(np.zeros(1), np.array([2.0]), bias=1.0, norm_factor=1.0)
    item = ItemState(np.array([3.0]), np.zeros(1), bias=0.5)

    assert predict_rating(1.0, user, item, 0.0, 100.0) == pytest.approx(8.5)
    assert predict_rating(1.0, user, item, 0.0, 5.0) == 5.0
    assert predict_rating(-20.0, user, item, 1.0, 5.0) == 1.0


def test_aggregate_feedback_builds_effective_rep(small_edges):
    graph, _ = _initialized(small_edges)
    v = graph.vertices

    nxt = aggregate_feedback(graph).vertices

    expected_u1 = v["u1"].p + (v["i1"].y + v["i2"].y) / math.sqrt(2)
    expected_u2 = v["u2"].p + v["i1"].y
    np.testing.assert_allclose(nxt["u1"].effective_rep, expected_u1)
    np.testing.assert_allclose(nxt["u2"].effective_rep, expected_u2)
    # items are untouched in phase 1
    assert nxt["i1"] is v["i1"]
    assert nxt["i2"] is v["i2"]


def test_effective_rep_recomputed_from_scratch(small_edges):
    graph, _ = _initialized(small_edges)
    stale = graph.apply_to_vertices(
        {"u1": None},
        lambda vid, s, _: s._replace(effective_rep=s.effective_rep + 100.0) if vid == "u1" else s,
    )

    np.testing.assert_allclose(
        aggregate_feedback(stale).vertices["u1"].effective_rep,
        aggregate_feedback(graph).vertices["u1"].effective_rep,
    )


def test_gradient_step_single_edge():
    vertices = {
        "u": UserState(np.array([0.5]), np.array([1.0]), bias=0.0, norm_factor=1.0),
        "i": ItemState(np.array([2.0]), np.array([0.25]), bias=0.0),
    }
    graph = RatingGraph([Edge("u", "i", 5.0)], vertices, rank=1)
    conf = SVDPlusPlusConf(rank=1, min_val=0.0, max_val=10.0, gamma1=0.1, gamma2=0.01, gamma6=0.5, gamma7=0.2)

    nxt = gradient_step(graph, conf, mean=1.0).vertices

    # pred = 1 + 0 + 0 + 2 * 1 = 3, err = 2
    assert nxt["u"].p[0] == pytest.approx(0.5 + 0.01 * (2 * 2.0 - 0.2 * 0.5))
    assert nxt["i"].q[0] == pytest.approx(2.0 + 0.01 * (2 * 1.0 - 0.2 * 2.0))
    update_y = 0.01 * (2 * 1.0 * 2.0 - 0.2 * 0.25)
    assert nxt["i"].y[0] == pytest.approx(0.25 + update_y)
    assert nxt["u"].effective_rep[0] == pytest.approx(1.0 + update_y)
    assert nxt["u"].bias == pytest.approx(0.1 * 2)
    assert nxt["i"].bias == pytest.approx(0.1 * 2)
    assert nxt["u"].norm_factor == 1.0


def test_gradient_step_uses_clipped_prediction():
    vertices = {
        "u": UserState(np.array([0.5]), np.array([1.0]), bias=0.0, norm_factor=1.0),
        "i": ItemState(np.array([2.0]), np.array([0.25]), bias=0.0),
    }
    graph = RatingGraph([Edge("u", "i", 5.0)], vertices, rank=1)
    conf = SVDPlusPlusConf(rank=1, min_val=0.0, max_val=2.5, gamma1=0.1, gamma2=0.01, gamma6=0.5, gamma7=0.2)

    nxt = gradient_step(graph, conf, mean=1.0).vertices

    # raw pred 3 is clipped to 2.5, err = 5 - 2.5
    err = 2.5
    assert nxt["u"].p[0] == pytest.approx(0.5 + 0.01 * (err * 2.0 - 0.2 * 0.5))
    assert nxt["i"].q[0] == pytest.approx(2.0 + 0.01 * (err * 1.0 - 0.2 * 2.0))
    update_y = 0.01 * (err * 1.0 * 2.0 - 0.2 * 0.25)
    assert nxt["i"].y[0] == pytest.approx(0.25 + update_y)
    assert nxt["u"].effective_rep[0] == pytest.approx(1.0 + update_y)
    assert nxt["u"].bias == pytest.approx(0.1 * err)
    assert nxt["i"].bias == pytest.approx(0.1 * err)


@pytest.mark.parametrize("bounds", [(1.0, 5.0), (3.9, 4.1), (0.0, 25.0)])
def test_predictions_stay_within_bounds(bounds, make_conf, make_edges):
    min_val, max_val = bounds
    conf = make_conf(rank=3, min_val=min_val, max_val=max_val)
    graph, mean = _initialized(make_edges(10, 8, 40), rank=3)

    for _ in range(5):
        graph = aggregate_feedback(graph)
        for t in graph.triplets():
            pred = predict_rating(mean, t.src_state, t.dst_state, conf.min_val, conf.max_val)
            assert min_val <= pred <= max_val
        graph = gradient_step(graph, conf, mean)


def test_zero_learning_rate_leaves_model_unchanged(make_conf, make_edges):
    conf = make_conf(rank=3, gamma1=0.0, gamma2=0.0)
    start, mean = _initialized(make_edges(10, 8, 40), rank=3)

    graph = start
    for _ in range(5):
        graph = run_iteration(graph, conf, mean)

    for vid, before in start.vertices.items():
        after = graph.vertices[vid]
        assert after.bias == before.bias
        if isinstance(before, UserState):
            np.testing.assert_array_equal(after.p, before.p)
            assert after.norm_factor == before.norm_factor
        else:
            np.testing.assert_array_equal(after.q, before.q)
            np.testing.assert_array_equal(after.y, before.y)


def test_isolated_vertices_carried_forward(small_edges, make_conf):
    conf = make_conf(rank=2)
    graph, mean = _initialized(small_edges, users=["u3"], items=["i3"])
    u3, i3 = graph.vertices["u3"], graph.vertices["i3"]

    for _ in range(3):
        graph = run_iteration(graph, conf, mean)

    assert graph.vertices["u3"] is u3
    assert graph.vertices["i3"] is i3
