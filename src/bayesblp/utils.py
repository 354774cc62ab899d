from __future__ import annotations

import random

import numpy as np
import tensorflow as tf


def set_seed(seed: int) -> None:
    """Set seeds across Python, NumPy, and TensorFlow for reproducibility."""
    if not isinstance(seed, int):
        raise TypeError("seed must be an integer")
    if seed < 0:
        raise ValueError("seed must be non-negative")

    random.seed(seed)
    np.random.seed(seed)
    tf.random.set_seed(seed)


def tfp_seed(rng: np.random.Generator) -> tf.Tensor:
    """Stateless TFP seed drawn from a NumPy generator, so runs replay exactly."""
    return tf.constant(rng.integers(1, 2**31 - 1, size=2), dtype=tf.int32)


def to_tensor(x) -> tf.Tensor:
    return tf.convert_to_tensor(x, dtype=tf.float64)
