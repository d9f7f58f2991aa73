import pandas as pd
import numpy as np

import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../../')))

from svdpp.utils.logger import setup_logger
from svdpp.data.preprocess import RatingsPreprocessor, edges_from_frame, leave_one_out_split
from svdpp.engine.metrics import evaluate_rating_metrics, training_rmse
from svdpp.engine.trainer import fit_svdpp
from svdpp.models.state import SVDPlusPlusConf
from svdpp.models.svdpp import SVDPlusPlusModel


logger = setup_logger(__name__)


def run_pipeline(
    ratings: pd.DataFrame,
    *,
    min_ratings: int = 5,
    seed: int = 42,
    progress: bool = True,
    **conf_kwargs,
) -> tuple[SVDPlusPlusModel, dict[str, float], tuple[pd.DataFrame, pd.DataFrame, RatingsPreprocessor]]:
    """End‑to‑end run: preprocess → split → train → evaluate.

    Parameters
    ----------
    ratings : pd.DataFrame
        DataFrame containing columns 'user_id', 'book_id', and 'rating'.
    min_ratings : int, optional
        Minimum number of ratings required for users and items during filtering,
        by default 5.
    seed : int, optional
        Seed of the held-out split and of the initial latent vectors, by default 42.
    progress : bool, optional
        Show tqdm progress bars, by default True.
    **conf_kwargs
        Hyperparameters forwarded to ``SVDPlusPlusConf`` such as 'rank',
        'max_iters', 'min_val', 'max_val' and the 'gamma*' rates.

    Returns
    -------
    model : SVDPlusPlusModel
        Trained SVD++ model.
    metrics : dict[str, float]
        'train_RMSE' from the per-item squared errors, 'RMSE' and 'MAE' on the held-out ratings.
    data_objects : tuple[pd.DataFrame, pd.DataFrame, RatingsPreprocessor]
        A tuple containing (train_df, test_df, preprocessor) for further analysis.
    """
    conf = SVDPlusPlusConf(**conf_kwargs)

    prep = RatingsPreprocessor(ratings, min_ratings=min_ratings)
    ratings_df = prep.process()
    train_df, test_df = leave_one_out_split(ratings_df, seed=seed)

    logger.info(
        f"Ratings: {len(ratings_df):,}  |  train: {len(train_df):,}  |  test: {len(test_df):,}  |  "
        f"users: {prep.num_users():,}  |  items: {prep.num_items():,}"
    )

    model = fit_svdpp(
        edges_from_frame(train_df),
        conf,
        np.random.default_rng(seed),
        progress=progress,
    )

    metrics = {"train_RMSE": training_rmse(model.graph)}
    metrics.update(evaluate_rating_metrics(model, test_df))

    logger.info("\nEvaluation:")
    for k, v in metrics.items():
        logger.info(f"  {k}: {v:.4f}")

    return model, metrics, (train_df, test_df, prep)
