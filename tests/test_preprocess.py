import pandas as pd
import pytest

from svdpp.data.preprocess import RatingsPreprocessor, edges_from_frame, leave_one_out_split
from svdpp.engine.graph import Edge


@pytest.fixture
def ratings() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "user_id": [10, 10, 10, 20, 20, 30, 30, 40],
            "book_id": [1, 2, 3, 1, 2, 1, 2, 3],
            "rating": [5, 4, 3, 4, 2, 1, 5, 4],
        }
    )


def test_users_and_items_do_not_share_ids(ratings):
    prep = RatingsPreprocessor(ratings, min_ratings=1)
    df = prep.process()

    assert prep.num_users() == 4
    assert prep.num_items() == 3
    assert set(df.user) == {0, 1, 2, 3}
    assert set(df.item) == {4, 5, 6}
    assert df.rating.dtype == "float64"
    assert prep.decode_item(4) == 1


def test_iterative_filter(ratings):
    # user 40 has one rating; dropping it leaves book 3 with a single rating
    df = RatingsPreprocessor(ratings, min_ratings=2).process()

    assert len(df) == 6
    assert df.user.nunique() == 3
    assert df.item.nunique() == 2


def test_leave_one_out_split(ratings):
    df = RatingsPreprocessor(ratings, min_ratings=1).process()
    train_df, test_df = leave_one_out_split(df, seed=0)

    assert len(train_df) + len(test_df) == len(df)
    # every user with >= 2 ratings has exactly one held out
    assert sorted(test_df.user) == [0, 1, 2]
    assert set(train_df.user) == {0, 1, 2, 3}


def test_edges_from_frame():
    df = pd.DataFrame({"user": [0, 1], "item": [2, 2], "rating": [4, 3.5]})
    assert edges_from_frame(df) == [Edge(0, 2, 4.0), Edge(1, 2, 3.5)]
