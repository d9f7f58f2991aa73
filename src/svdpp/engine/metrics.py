from tqdm.auto import tqdm

import numpy as np
import pandas as pd

from svdpp.engine.graph import EdgeTriplet, RatingGraph
from svdpp.engine.training import predict_rating
from svdpp.models.state import ItemState, SVDPlusPlusConf, VertexId, VertexState
from svdpp.models.svdpp import SVDPlusPlusModel


def _squared_error(conf: SVDPlusPlusConf, mean: float, triplet: EdgeTriplet) -> list[tuple[VertexId, float]]:
    pred = predict_rating(mean, triplet.src_state, triplet.dst_state, conf.min_val, conf.max_val)
    return [(triplet.dst, (triplet.rating - pred) ** 2)]


def _apply_squared_error(vid: VertexId, state: VertexState, err: float | None) -> VertexState:
    if err is None:
        return state
    return state._replace(squared_error=err)


def evaluate_training_error(graph: RatingGraph, conf: SVDPlusPlusConf, mean: float) -> RatingGraph:
    """Store on every rated item the summed squared error of its training ratings.

    Uses the users' ``effective_rep`` exactly as the last training iteration left it.
    """
    errors = graph.gather_and_merge(
        lambda triplet: _squared_error(conf, mean, triplet),
        lambda a, b: a + b,
    )
    return graph.apply_to_vertices(errors, _apply_squared_error)


def current_rmse(graph: RatingGraph, conf: SVDPlusPlusConf, mean: float) -> float:
    """RMSE of the clipped predictions over every training rating, without touching the graph."""
    total = sum(err for t in graph.triplets() for _, err in _squared_error(conf, mean, t))
    return float(np.sqrt(total / graph.num_edges))


def training_mse(graph: RatingGraph) -> float:
    """Mean squared training error: sum of ``ItemState.squared_error`` over all edges."""
    total = sum(
        state.squared_error
        for state in graph.vertices.values()
        if isinstance(state, ItemState) and state.squared_error is not None
    )
    return total / graph.num_edges


def training_rmse(graph: RatingGraph) -> float:
    return float(np.sqrt(training_mse(graph)))


def evaluate_rating_metrics(
    model: SVDPlusPlusModel,
    test_df: pd.DataFrame,
    *,
    user_col: str = "user",
    item_col: str = "item",
    rating_col: str = "rating",
) -> dict[str, float]:
    """Compute RMSE and MAE of *model* on held-out explicit ratings.

    Pairs whose user or item never appeared in training are still scored,
    falling back to the bias-only part of the prediction rule.
    """
    errors: list[float] = []
    for user, item, rating in tqdm(
        test_df[[user_col, item_col, rating_col]].itertuples(index=False, name=None),
        total=len(test_df),
        desc="Evaluating",
        unit="rating",
        bar_format="{l_bar}{bar:30} | {n_fmt}/{total_fmt} [{elapsed}<{remaining}, {rate_fmt}]",
    ):
        errors.append(float(rating) - model.predict(user, item))

    errs = np.asarray(errors, dtype=np.float64)
    return {
        "RMSE": float(np.sqrt(np.mean(errs ** 2))),
        "MAE": float(np.mean(np.abs(errs))),
    }
