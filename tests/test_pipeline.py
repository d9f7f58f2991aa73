import math

import numpy as np
import pandas as pd

from svdpp.models.svdpp import SVDPlusPlusModel
from svdpp.scripts.run_pipeline_svdpp import run_pipeline


def _ratings(n_users: int = 20, n_books: int = 10, per_user: int = 8, seed: int = 0) -> pd.DataFrame:
    gen = np.random.default_rng(seed)
    rows = []
    for user in range(n_users):
        for book in gen.choice(n_books, size=per_user, replace=False):
            rows.append((1000 + user, 50 + int(book), int(gen.integers(1, 6))))
    return pd.DataFrame(rows, columns=["user_id", "book_id", "rating"])


def test_run_pipeline_end_to_end():
    model, metrics, (train_df, test_df, prep) = run_pipeline(
        _ratings(),
        min_ratings=5,
        seed=1,
        progress=False,
        rank=3,
        max_iters=5,
        min_val=1.0,
        max_val=5.0,
    )

    assert isinstance(model, SVDPlusPlusModel)
    assert set(metrics) == {"train_RMSE", "RMSE", "MAE"}
    assert all(math.isfinite(v) for v in metrics.values())
    assert len(test_df) == prep.num_users()
    assert model.graph.num_edges == len(train_df)
    assert model.conf.rank == 3
