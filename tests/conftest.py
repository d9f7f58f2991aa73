import numpy as np
import pytest

from svdpp.models.state import SVDPlusPlusConf


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def small_edges() -> list[tuple[str, str, float]]:
    """2 users, 2 items: u1 rated both items, u2 rated i1 only."""
    return [("u1", "i1", 5.0), ("u1", "i2", 3.0), ("u2", "i1", 4.0)]


@pytest.fixture
def make_conf():
    def _make(**overrides) -> SVDPlusPlusConf:
        params = dict(
            rank=1, max_iters=0, min_val=0.0, max_val=25.0,
            gamma1=0.007, gamma2=0.007, gamma6=0.005, gamma7=0.015,
        )
        params.update(overrides)
        return SVDPlusPlusConf(**params)
    return _make


def synthetic_edges(n_users: int, n_items: int, n_edges: int, seed: int = 0) -> list[tuple[int, int, float]]:
    """Distinct (user, item) pairs with half-star ratings; items are offset by n_users."""
    gen = np.random.default_rng(seed)
    pairs = gen.choice(n_users * n_items, size=n_edges, replace=False)
    ratings = gen.integers(2, 11, size=n_edges) / 2.0
    return [
        (int(p // n_items), n_users + int(p % n_items), float(r))
        for p, r in zip(pairs, ratings)
    ]


@pytest.fixture
def make_edges():
    return synthetic_edges
