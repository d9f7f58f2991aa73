import os
import sys

import pandas as pd

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '../../')))
from svdpp.data.download import load_data_from_kagglehub
from svdpp.scripts.run_pipeline_svdpp import run_pipeline


if __name__ == "__main__":
    data_path = load_data_from_kagglehub()
    ratings_df = pd.read_csv(data_path.joinpath("ratings.csv"))
    ratings_df_sampled = ratings_df.sample(frac=0.05, random_state=42)

    model, results, _ = run_pipeline(
        ratings=ratings_df_sampled,
        min_ratings=5,
        seed=42,
        rank=10,
        max_iters=10,
        min_val=1.0,
        max_val=5.0,
        gamma1=0.007,
        gamma2=0.007,
        gamma6=0.005,
        gamma7=0.015,
    )
