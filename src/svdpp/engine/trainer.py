import logging
from typing import Iterable

import numpy as np
from tqdm.auto import tqdm

from svdpp.engine.bias import initialize_biases
from svdpp.engine.errors import EmptyInputError
from svdpp.engine.graph import RatingGraph
from svdpp.engine.metrics import current_rmse, evaluate_training_error, training_rmse
from svdpp.engine.training import aggregate_feedback, gradient_step
from svdpp.models.state import SVDPlusPlusConf, TrainingState, VertexId
from svdpp.models.svdpp import SVDPlusPlusModel
from svdpp.utils.logger import setup_logger

logger = setup_logger(__name__)

_TRANSITIONS: dict[TrainingState | None, set[TrainingState]] = {
    None: {TrainingState.INITIALIZED},
    TrainingState.INITIALIZED: {TrainingState.AGGREGATING_FEEDBACK, TrainingState.EVALUATED},
    TrainingState.AGGREGATING_FEEDBACK: {TrainingState.TRAINING},
    TrainingState.TRAINING: {TrainingState.AGGREGATING_FEEDBACK, TrainingState.EVALUATED},
    TrainingState.EVALUATED: set(),
}


class SVDPlusPlusTrainer:
    """
    Drives SVD++ training through its explicit states.

    ``INITIALIZED`` → (``AGGREGATING_FEEDBACK`` → ``TRAINING``) × max_iters → ``EVALUATED``

    Each step consumes the previous graph generation and replaces it only once
    the step completed, so an exception leaves the last complete generation in
    place and the run is aborted.
    """

    def __init__(self, conf: SVDPlusPlusConf, rng: np.random.Generator) -> None:
        self.conf = conf.check()
        self.rng = rng
        self.state: TrainingState | None = None
        self.epoch = 0
        self.graph: RatingGraph | None = None
        self.global_mean: float | None = None

    def _check_transition(self, target: TrainingState) -> None:
        if target not in _TRANSITIONS[self.state]:
            current = self.state.value if self.state is not None else "new"
            raise RuntimeError(f"cannot move from '{current}' to '{target.value}'")

    def _enter(self, target: TrainingState, graph: RatingGraph) -> RatingGraph:
        current = self.state.value if self.state is not None else "new"
        logger.debug(f"{current} -> {target.value} (epoch {self.epoch})")
        self.state = target
        self.graph = graph
        return graph

    # ------------------------------------------------------------------
    # steps
    # ------------------------------------------------------------------

    def initialize(
        self,
        edges: Iterable[tuple[VertexId, VertexId, float]],
        *,
        users: Iterable[VertexId] = (),
        items: Iterable[VertexId] = (),
    ) -> RatingGraph:
        """Build random vertex states and compute biases, norm factors and the global mean."""
        self._check_transition(TrainingState.INITIALIZED)
        edges = list(edges)
        if not edges:
            raise EmptyInputError("at least one rating is required to train SVD++")

        graph = RatingGraph.from_edges(edges, self.conf.rank, self.rng, users=users, items=items)
        graph, mean = initialize_biases(graph)
        self.global_mean = mean
        self._enter(TrainingState.INITIALIZED, graph)
        logger.info(
            f"Rating graph: {len(graph.users()):,} users | {len(graph.items()):,} items | "
            f"{graph.num_edges:,} ratings | global mean = {mean:.4f}"
        )
        return graph

    def aggregate_feedback(self) -> RatingGraph:
        self._check_transition(TrainingState.AGGREGATING_FEEDBACK)
        return self._enter(TrainingState.AGGREGATING_FEEDBACK, aggregate_feedback(self.graph))

    def train(self) -> RatingGraph:
        self._check_transition(TrainingState.TRAINING)
        graph = gradient_step(self.graph, self.conf, self.global_mean)
        self.epoch += 1
        return self._enter(TrainingState.TRAINING, graph)

    def evaluate(self) -> RatingGraph:
        self._check_transition(TrainingState.EVALUATED)
        graph = self._enter(
            TrainingState.EVALUATED,
            evaluate_training_error(self.graph, self.conf, self.global_mean),
        )
        logger.info(f"Finished {self.epoch} epochs | training RMSE = {training_rmse(self.graph):.4f}")
        return graph

    # ------------------------------------------------------------------
    # full run
    # ------------------------------------------------------------------

    def run(
        self,
        edges: Iterable[tuple[VertexId, VertexId, float]],
        *,
        users: Iterable[VertexId] = (),
        items: Iterable[VertexId] = (),
        progress: bool = False,
    ) -> tuple[RatingGraph, float]:
        self.initialize(edges, users=users, items=items)
        for _ in tqdm(range(self.conf.max_iters), desc="Training", unit="epoch", disable=not progress):
            self.aggregate_feedback()
            self.train()
            if logger.isEnabledFor(logging.INFO):
                rmse = current_rmse(self.graph, self.conf, self.global_mean)
                logger.info(f"Epoch {self.epoch}/{self.conf.max_iters} | training RMSE = {rmse:.4f}")
        self.evaluate()
        return self.graph, self.global_mean


def train_svdpp(
    edges: Iterable[tuple[VertexId, VertexId, float]],
    conf: SVDPlusPlusConf,
    rng: np.random.Generator | None = None,
    *,
    users: Iterable[VertexId] = (),
    items: Iterable[VertexId] = (),
    progress: bool = False,
) -> tuple[RatingGraph, float]:
    """
    Train SVD++ on ``(user, item, rating)`` edges.

    Parameters
    ----------
    edges : Iterable[tuple]
        Ratings; the first element is the user vertex id, the second the item vertex id.
    conf : SVDPlusPlusConf
        Hyperparameters, validated before any computation.
    rng : np.random.Generator, optional
        Source of the initial random vectors. A fresh unseeded generator when omitted.
    users, items : Iterable, optional
        Extra vertex ids with no ratings; they are returned unchanged.
    progress : bool, default False
        Show a tqdm progress bar over epochs.

    Returns
    -------
    graph : RatingGraph
        Final generation; items carry their summed squared training error.
    global_mean : float
        Mean of all ratings.
    """
    trainer = SVDPlusPlusTrainer(conf, rng if rng is not None else np.random.default_rng())
    return trainer.run(edges, users=users, items=items, progress=progress)


def fit_svdpp(
    edges: Iterable[tuple[VertexId, VertexId, float]],
    conf: SVDPlusPlusConf,
    rng: np.random.Generator | None = None,
    **kwargs,
) -> SVDPlusPlusModel:
    """Same as ``train_svdpp`` but wraps the result into a ``SVDPlusPlusModel``."""
    graph, mean = train_svdpp(edges, conf, rng, **kwargs)
    return SVDPlusPlusModel(graph, mean, conf)
