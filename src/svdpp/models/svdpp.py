"""Module containing the trained SVD++ model."""
from svdpp.engine.graph import RatingGraph
from svdpp.engine.training import predict_rating
from svdpp.models.state import ItemState, SVDPlusPlusConf, UserState, VertexId


class SVDPlusPlusModel:
    """
    Trained SVD++ model: final graph generation, global mean and hyperparameters.

    Predictions follow the training rule
    ``mu + b_u + b_i + q_i . (p_u + |N(u)|^(-1/2) * sum(y_j))`` clipped to
    ``[min_val, max_val]``. A user or item missing from the graph contributes
    no bias and no interaction term.

    Attributes:
        graph (RatingGraph): Vertex states after training and error evaluation.
        global_mean (float): Mean of all training ratings.
        conf (SVDPlusPlusConf): Hyperparameters the model was trained with.
    """

    def __init__(self, graph: RatingGraph, global_mean: float, conf: SVDPlusPlusConf) -> None:
        self.graph = graph
        self.global_mean = global_mean
        self.conf = conf

    def user(self, vid: VertexId) -> UserState | None:
        state = self.graph.vertices.get(vid)
        return state if isinstance(state, UserState) else None

    def item(self, vid: VertexId) -> ItemState | None:
        state = self.graph.vertices.get(vid)
        return state if isinstance(state, ItemState) else None

    def predict(self, user_id: VertexId, item_id: VertexId) -> float:
        user, item = self.user(user_id), self.item(item_id)
        if user is not None and item is not None:
            return predict_rating(self.global_mean, user, item, self.conf.min_val, self.conf.max_val)

        pred = self.global_mean
        pred += user.bias if user is not None else 0.0
        pred += item.bias if item is not None else 0.0
        return min(max(pred, self.conf.min_val), self.conf.max_val)

    def __repr__(self) -> str:
        return f"SVDPlusPlusModel(global_mean={self.global_mean:.4f}, graph={self.graph!r})"
