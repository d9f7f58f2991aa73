from pathlib import Path
import os
import shutil

import kagglehub

from svdpp.utils.logger import setup_logger

logger = setup_logger(__name__)


def load_data_from_kagglehub(dataset: str = "zygmunt/goodbooks-10k", target_dir: str | None = None) -> Path:
    """Download *dataset* and copy it under *target_dir* (``./goodbooks-10k`` by default)."""
    src_path = kagglehub.dataset_download(dataset)
    dst_path = target_dir or os.path.join(os.getcwd(), "goodbooks-10k")

    shutil.copytree(src_path, dst_path, dirs_exist_ok=True)
    logger.info(f"Kaggle Dataset: {dataset} was downloaded properly under path: {dst_path}")

    return Path(dst_path)
