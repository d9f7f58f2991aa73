"""Module containing vertex states and configuration of SVD++ training."""
from enum import Enum
from typing import NamedTuple, Optional, Union, Hashable

import numpy as np
from pydantic import BaseModel, ConfigDict

from svdpp.engine.errors import InvalidConfigError

VertexId = Hashable


class UserState(NamedTuple):
    """
    State of a user vertex (source endpoint of rating edges).

    Attributes:
        p (np.ndarray): Personal latent vector of the user.
        effective_rep (np.ndarray): ``p + norm_factor * sum(y)`` over the rated items,
            rebuilt at the start of every iteration.
        bias (float): Average of the user's ratings.
        norm_factor (float): ``1 / sqrt(#ratings)``, fixed once computed.
    """
    p: np.ndarray
    effective_rep: np.ndarray
    bias: float = 0.0
    norm_factor: float = 0.0


class ItemState(NamedTuple):
    """
    State of an item vertex (destination endpoint of rating edges).

    Attributes:
        q (np.ndarray): Latent vector of the item.
        y (np.ndarray): Implicit feedback vector the item adds to every user who rated it.
        bias (float): Average of the item's ratings.
        squared_error (float | None): Summed squared training error over the item's
            ratings, filled after training.
    """
    q: np.ndarray
    y: np.ndarray
    bias: float = 0.0
    squared_error: Optional[float] = None


VertexState = Union[UserState, ItemState]


class TrainingState(str, Enum):
    INITIALIZED = "initialized"
    AGGREGATING_FEEDBACK = "aggregating_feedback"
    TRAINING = "training"
    EVALUATED = "evaluated"


class SVDPlusPlusConf(BaseModel):
    """
    Hyperparameters of SVD++.

    Parameters
    ----------
    rank : int
        Length of every latent vector.
    max_iters : int
        Number of training iterations (epochs over all ratings).
    min_val, max_val : float
        Predictions are clipped to ``[min_val, max_val]``.
    gamma1 : float
        Learning rate of the biases.
    gamma2 : float
        Learning rate of the latent and implicit feedback vectors.
    gamma6 : float
        Regularization of the biases.
    gamma7 : float
        Regularization of the latent and implicit feedback vectors.
    """
    model_config = ConfigDict(frozen=True)

    rank: int = 10
    max_iters: int = 10
    min_val: float = 0.0
    max_val: float = 5.0
    gamma1: float = 0.007
    gamma2: float = 0.007
    gamma6: float = 0.005
    gamma7: float = 0.015

    def check(self) -> "SVDPlusPlusConf":
        """Raise ``InvalidConfigError`` unless the parameters describe a runnable training."""
        if self.rank <= 0:
            raise InvalidConfigError(f"rank must be positive, got {self.rank}")
        if self.max_iters < 0:
            raise InvalidConfigError(f"max_iters must be non-negative, got {self.max_iters}")
        if self.min_val > self.max_val:
            raise InvalidConfigError(
                f"min_val ({self.min_val}) must not exceed max_val ({self.max_val})"
            )
        return self
