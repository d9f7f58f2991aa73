"""In-process rating graph with the gather/apply primitives SVD++ is written against.

A ``RatingGraph`` is one immutable generation of vertex states plus the rating
edges. ``gather_and_merge`` evaluates a contribution function once per edge and
reduces the emitted messages per vertex; ``apply_to_vertices`` consumes those
messages and returns the next generation. The merge functions handed in must be
associative and commutative, so the reduction order is irrelevant.
"""
from types import MappingProxyType
from typing import Callable, Iterable, Iterator, Mapping, NamedTuple, Optional, TypeVar

import numpy as np

from svdpp.engine.errors import EmptyInputError, RoleConflictError, UnknownVertexError
from svdpp.models.state import ItemState, UserState, VertexId, VertexState
from svdpp.models.vector_math import check_length, random_vector

M = TypeVar("M")


class Edge(NamedTuple):
    """Rating given by user ``src`` to item ``dst``."""
    src: VertexId
    dst: VertexId
    rating: float


class EdgeTriplet(NamedTuple):
    """An edge together with the current states of both endpoints."""
    src: VertexId
    dst: VertexId
    rating: float
    src_state: UserState
    dst_state: ItemState


EdgeContribution = Callable[[EdgeTriplet], Iterable[tuple[VertexId, M]]]
VertexUpdate = Callable[[VertexId, VertexState, Optional[M]], VertexState]


class RatingGraph:
    """
    Bipartite user → item rating graph holding one generation of vertex states.

    Parameters
    ----------
    edges : Iterable[Edge]
        Rating edges; ``src`` must be a user vertex and ``dst`` an item vertex.
    vertices : Mapping[VertexId, VertexState]
        State of every vertex, including vertices without incident edges.
    rank : int
        Length of every vector held in the states.
    validate : bool, default True
        Check vector lengths and edge endpoints. Generations derived through
        ``apply_to_vertices`` skip the check.
    """

    def __init__(
        self,
        edges: Iterable[Edge],
        vertices: Mapping[VertexId, VertexState],
        rank: int,
        *,
        validate: bool = True,
    ):
        self.rank = rank
        self._edges: tuple[Edge, ...] = tuple(
            e if isinstance(e, Edge) else Edge(e[0], e[1], float(e[2])) for e in edges
        )
        self._vertices: dict[VertexId, VertexState] = dict(vertices)
        if validate:
            self._validate()

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[tuple[VertexId, VertexId, float]],
        rank: int,
        rng: np.random.Generator,
        *,
        users: Iterable[VertexId] = (),
        items: Iterable[VertexId] = (),
    ) -> "RatingGraph":
        """Build the graph with randomly initialised vectors and zero biases.

        Roles are taken from edge direction; ``users``/``items`` declare extra
        vertices that may have no ratings at all.
        """
        edge_list = [Edge(src, dst, float(rating)) for src, dst, rating in edges]
        if not edge_list:
            raise EmptyInputError("cannot build a rating graph without edges")

        # first-appearance order keeps the random draws reproducible for a given input
        roles: dict[VertexId, type] = {}

        def _assign(vid: VertexId, role: type) -> None:
            known = roles.setdefault(vid, role)
            if known is not role:
                raise RoleConflictError(f"vertex {vid!r} is used both as a user and as an item")

        for edge in edge_list:
            _assign(edge.src, UserState)
            _assign(edge.dst, ItemState)
        for vid in users:
            _assign(vid, UserState)
        for vid in items:
            _assign(vid, ItemState)

        vertices = {
            vid: role(random_vector(rank, rng), random_vector(rank, rng))
            for vid, role in roles.items()
        }
        return cls(edge_list, vertices, rank, validate=False)

    def _validate(self) -> None:
        for vid, state in self._vertices.items():
            if isinstance(state, UserState):
                self._vertices[vid] = state._replace(
                    p=check_length(state.p, self.rank, f"p of user {vid!r}"),
                    effective_rep=check_length(
                        state.effective_rep, self.rank, f"effective_rep of user {vid!r}"
                    ),
                )
            elif isinstance(state, ItemState):
                self._vertices[vid] = state._replace(
                    q=check_length(state.q, self.rank, f"q of item {vid!r}"),
                    y=check_length(state.y, self.rank, f"y of item {vid!r}"),
                )
            else:
                raise TypeError(f"unsupported state for vertex {vid!r}: {type(state).__name__}")

        for edge in self._edges:
            if edge.src not in self._vertices or edge.dst not in self._vertices:
                raise UnknownVertexError(f"edge {edge} references an unknown vertex")
            if not isinstance(self._vertices[edge.src], UserState):
                raise RoleConflictError(f"edge source {edge.src!r} is not a user vertex")
            if not isinstance(self._vertices[edge.dst], ItemState):
                raise RoleConflictError(f"edge destination {edge.dst!r} is not an item vertex")

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------

    @property
    def edges(self) -> tuple[Edge, ...]:
        return self._edges

    @property
    def vertices(self) -> Mapping[VertexId, VertexState]:
        return MappingProxyType(self._vertices)

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    def users(self) -> dict[VertexId, UserState]:
        return {vid: s for vid, s in self._vertices.items() if isinstance(s, UserState)}

    def items(self) -> dict[VertexId, ItemState]:
        return {vid: s for vid, s in self._vertices.items() if isinstance(s, ItemState)}

    def triplets(self) -> Iterator[EdgeTriplet]:
        for edge in self._edges:
            yield EdgeTriplet(
                edge.src, edge.dst, edge.rating,
                self._vertices[edge.src], self._vertices[edge.dst],
            )

    # ------------------------------------------------------------------
    # gather / apply
    # ------------------------------------------------------------------

    def gather_and_merge(
        self,
        edge_contribution: EdgeContribution,
        merge: Callable[[M, M], M],
    ) -> dict[VertexId, M]:
        """Evaluate *edge_contribution* on every edge and reduce messages per vertex.

        Vertices that receive nothing are absent from the result.
        """
        messages: dict[VertexId, M] = {}
        for triplet in self.triplets():
            for vid, message in edge_contribution(triplet):
                if vid in messages:
                    messages[vid] = merge(messages[vid], message)
                else:
                    messages[vid] = message
        return messages

    def apply_to_vertices(
        self,
        messages: Mapping[VertexId, M],
        update: VertexUpdate,
    ) -> "RatingGraph":
        """Return the next generation; *update* sees ``None`` for vertices without a message."""
        next_vertices = {
            vid: update(vid, state, messages.get(vid))
            for vid, state in self._vertices.items()
        }
        return RatingGraph(self._edges, next_vertices, self.rank, validate=False)

    def __repr__(self) -> str:
        return (
            f"RatingGraph(users={len(self.users())}, items={len(self.items())}, "
            f"edges={self.num_edges}, rank={self.rank})"
        )
