"""Module containing the two gather/apply phases of one SVD++ training iteration.

Phase 1 rebuilds every user's effective representation
``p_u + |N(u)|^(-1/2) * sum(y_i)``; phase 2 takes one gradient step over all
ratings using the prediction rule of Koren (2008), page 6:

    r_ui = mu + b_u + b_i + q_i . (p_u + |N(u)|^(-1/2) * sum(y_j))
"""
from functools import partial
from typing import NamedTuple

import numpy as np

from svdpp.engine.graph import EdgeTriplet, RatingGraph
from svdpp.models import vector_math as vm
from svdpp.models.state import ItemState, SVDPlusPlusConf, UserState, VertexId, VertexState


class Gradient(NamedTuple):
    """Update merged per vertex in phase 2."""
    factor: np.ndarray
    feedback: np.ndarray
    bias: float


def predict_rating(
    mean: float,
    user: UserState,
    item: ItemState,
    min_val: float,
    max_val: float,
) -> float:
    """Predicted rating of *item* by *user*, clipped to ``[min_val, max_val]``."""
    pred = mean + user.bias + item.bias + vm.dot(item.q, user.effective_rep)
    return min(max(pred, min_val), max_val)


# ----------------------------------------------------------------------
# Phase 1: implicit feedback aggregation
# ----------------------------------------------------------------------

def _send_item_feedback(triplet: EdgeTriplet) -> list[tuple[VertexId, np.ndarray]]:
    return [(triplet.src, triplet.dst_state.y)]


def _apply_effective_rep(vid: VertexId, state: VertexState, feedback_sum: np.ndarray | None) -> VertexState:
    if feedback_sum is None:
        return state
    return state._replace(
        effective_rep=vm.add(state.p, vm.scale(feedback_sum, state.norm_factor))
    )


def aggregate_feedback(graph: RatingGraph) -> RatingGraph:
    """Overwrite each rating user's ``effective_rep``; items and isolated users are untouched."""
    feedback_sums = graph.gather_and_merge(_send_item_feedback, vm.add)
    return graph.apply_to_vertices(feedback_sums, _apply_effective_rep)


# ----------------------------------------------------------------------
# Phase 2: prediction and gradient step
# ----------------------------------------------------------------------

def _gradient_messages(
    conf: SVDPlusPlusConf,
    mean: float,
    triplet: EdgeTriplet,
) -> list[tuple[VertexId, Gradient]]:
    usr, itm = triplet.src_state, triplet.dst_state
    err = triplet.rating - predict_rating(mean, usr, itm, conf.min_val, conf.max_val)

    update_p = vm.scale(vm.subtract(vm.scale(itm.q, err), vm.scale(usr.p, conf.gamma7)), conf.gamma2)
    update_q = vm.scale(
        vm.subtract(vm.scale(usr.effective_rep, err), vm.scale(itm.q, conf.gamma7)), conf.gamma2
    )
    # sent to both ends: the real update of y_i, noise on the user's transient effective_rep
    update_y = vm.scale(
        vm.subtract(vm.scale(itm.q, err * usr.norm_factor), vm.scale(itm.y, conf.gamma7)),
        conf.gamma2,
    )
    return [
        (triplet.src, Gradient(update_p, update_y, (err - conf.gamma6 * usr.bias) * conf.gamma1)),
        (triplet.dst, Gradient(update_q, update_y, (err - conf.gamma6 * itm.bias) * conf.gamma1)),
    ]


def _merge_gradients(a: Gradient, b: Gradient) -> Gradient:
    return Gradient(vm.add(a.factor, b.factor), vm.add(a.feedback, b.feedback), a.bias + b.bias)


def _apply_gradient(vid: VertexId, state: VertexState, grad: Gradient | None) -> VertexState:
    if grad is None:
        return state
    if isinstance(state, UserState):
        return state._replace(
            p=vm.add(state.p, grad.factor),
            effective_rep=vm.add(state.effective_rep, grad.feedback),
            bias=state.bias + grad.bias,
        )
    return state._replace(
        q=vm.add(state.q, grad.factor),
        y=vm.add(state.y, grad.feedback),
        bias=state.bias + grad.bias,
    )


def gradient_step(graph: RatingGraph, conf: SVDPlusPlusConf, mean: float) -> RatingGraph:
    """Update ``p``, ``q``, ``y`` and biases from every rating of the current generation.

    Must run on the output of ``aggregate_feedback`` of the same iteration.
    """
    gradients = graph.gather_and_merge(partial(_gradient_messages, conf, mean), _merge_gradients)
    return graph.apply_to_vertices(gradients, _apply_gradient)


def run_iteration(graph: RatingGraph, conf: SVDPlusPlusConf, mean: float) -> RatingGraph:
    """One full epoch: phase 1 followed by phase 2."""
    return gradient_step(aggregate_feedback(graph), conf, mean)
