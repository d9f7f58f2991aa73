import pandas as pd
import numpy as np
from sklearn.preprocessing import LabelEncoder

from svdpp.engine.graph import Edge


class RatingsPreprocessor:
    """Prepare explicit ratings for SVD++ on a bipartite user → item graph.

    Parameters
    ----------
    ratings : pd.DataFrame
        Must contain the user, item and rating columns.
    min_ratings : int, default 5
        Minimum #ratings both for a user and for an item.
    user_col, item_col, rating_col : str
        Column names in *ratings*; goodbooks-10k naming by default.

    After ``process()`` users are encoded as ``0 .. n_users - 1`` and items as
    ``n_users .. n_users + n_items - 1`` so both share one vertex id space
    without collisions.
    """

    def __init__(
        self,
        ratings: pd.DataFrame,
        *,
        min_ratings: int = 5,
        user_col: str = "user_id",
        item_col: str = "book_id",
        rating_col: str = "rating",
    ):
        self._raw = ratings.copy()
        self.min_ratings = min_ratings
        self.user_col = user_col
        self.item_col = item_col
        self.rating_col = rating_col

        # public artefacts filled by .process()
        self.ratings: pd.DataFrame  # filtered + encoded
        self.user_encoder = LabelEncoder()
        self.item_encoder = LabelEncoder()

    def _iterative_filter(self, df: pd.DataFrame) -> pd.DataFrame:
        """Drop users/items with < min_ratings *recursively* until stable."""
        changed = True
        while changed:
            start_len = len(df)

            user_counts = df[self.user_col].value_counts()
            df = df[df[self.user_col].isin(user_counts[user_counts >= self.min_ratings].index)]

            item_counts = df[self.item_col].value_counts()
            df = df[df[self.item_col].isin(item_counts[item_counts >= self.min_ratings].index)]

            changed = len(df) != start_len
        return df.reset_index(drop=True)

    def process(self) -> pd.DataFrame:
        """Run full pipeline → returns DataFrame with columns [user, item, rating]."""
        df = self._iterative_filter(self._raw)

        # encode AFTER filtering so that indices are dense
        df["user"] = self.user_encoder.fit_transform(df[self.user_col])
        df["item"] = self.item_encoder.fit_transform(df[self.item_col]) + self.num_users()
        df["rating"] = df[self.rating_col].astype(np.float64)

        self.ratings = df[["user", "item", "rating"]].copy()
        return self.ratings

    # helpers
    def num_users(self) -> int:
        return len(self.user_encoder.classes_)

    def num_items(self) -> int:
        return len(self.item_encoder.classes_)

    def decode_item(self, vertex_id: int):
        """Original item id of an item vertex."""
        return self.item_encoder.inverse_transform([vertex_id - self.num_users()])[0]


def leave_one_out_split(df: pd.DataFrame, *, seed: int = 42) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Randomly hold out **one** rating per user for the test set.

    Users with a single rating keep it in the training split, so every user
    appears in training.
    """
    rng = np.random.default_rng(seed)
    test_idx: list[int] = []

    for _, group in df.groupby("user"):
        if len(group) < 2:
            continue
        test_idx.append(rng.choice(group.index))

    test_df = df.loc[test_idx].reset_index(drop=True)
    train_df = df.drop(index=test_idx).reset_index(drop=True)
    return train_df, test_df


def edges_from_frame(
    df: pd.DataFrame,
    *,
    user_col: str = "user",
    item_col: str = "item",
    rating_col: str = "rating",
) -> list[Edge]:
    """Turn a ratings DataFrame into graph edges."""
    return [
        Edge(user, item, float(rating))
        for user, item, rating in df[[user_col, item_col, rating_col]].itertuples(index=False, name=None)
    ]
