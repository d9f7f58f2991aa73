"""One-shot pass computing the global mean, vertex biases and user norm factors."""
import math

from svdpp.engine.errors import EmptyInputError
from svdpp.engine.graph import EdgeTriplet, RatingGraph
from svdpp.models.state import UserState, VertexId, VertexState
from svdpp.utils.logger import setup_logger

logger = setup_logger(__name__)


def global_mean(graph: RatingGraph) -> float:
    """Arithmetic mean of every rating in the graph."""
    if graph.num_edges == 0:
        raise EmptyInputError("global mean is undefined without ratings")
    return sum(edge.rating for edge in graph.edges) / graph.num_edges


def _count_and_sum(triplet: EdgeTriplet) -> list[tuple[VertexId, tuple[int, float]]]:
    return [(triplet.src, (1, triplet.rating)), (triplet.dst, (1, triplet.rating))]


def _merge_count_and_sum(a: tuple[int, float], b: tuple[int, float]) -> tuple[int, float]:
    return a[0] + b[0], a[1] + b[1]


def _apply_bias(vid: VertexId, state: VertexState, msg: tuple[int, float] | None) -> VertexState:
    if msg is None:
        return state
    count, rating_sum = msg
    bias = rating_sum / count
    if isinstance(state, UserState):
        return state._replace(bias=bias, norm_factor=1.0 / math.sqrt(count))
    return state._replace(bias=bias)


def initialize_biases(graph: RatingGraph) -> tuple[RatingGraph, float]:
    """
    Compute the global rating mean and set every vertex's local bias.

    The bias of a vertex is the plain average of its incident ratings (not an
    offset from the global mean). Users additionally get ``1 / sqrt(degree)``
    as their norm factor. Vertices without ratings are returned unchanged.

    Returns:
        tuple[RatingGraph, float]: The next graph generation and the global mean.
    """
    mean = global_mean(graph)
    counts = graph.gather_and_merge(_count_and_sum, _merge_count_and_sum)
    logger.debug(f"Bias initialisation reached {len(counts):,} vertices | global mean = {mean:.4f}")
    return graph.apply_to_vertices(counts, _apply_bias), mean
