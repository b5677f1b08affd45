"""Synthetic Gaussian blobs, one per class."""

from typing import Tuple

import numpy as np


def make_blobs(
    samples_per_class: int = 100,
    num_classes: int = 2,
    num_features: int = 2,
    spread: float = 0.5,
    separation: float = 4.0,
    seed: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sample isotropic Gaussian clusters around well separated centers.

    With the default spread and separation, two classes are linearly
    separable with overwhelming probability.

    Returns:
        Tuple of (inputs float32 (N, num_features), labels int64 (N,)),
        shuffled.
    """
    if num_classes < 2:
        raise ValueError(f"num_classes must be at least 2, got {num_classes}")

    rng = np.random.RandomState(seed)

    # centers on the axes, alternating sign: +e0, -e0, +e1, -e1, ...
    centers = np.zeros((num_classes, num_features), dtype=np.float32)
    for cls in range(num_classes):
        axis = (cls // 2) % num_features
        sign = 1.0 if cls % 2 == 0 else -1.0
        centers[cls, axis] = sign * separation / 2.0 * (1 + cls // (2 * num_features))

    inputs = []
    labels = []
    for cls in range(num_classes):
        points = rng.normal(
            loc=centers[cls], scale=spread, size=(samples_per_class, num_features)
        )
        inputs.append(points.astype(np.float32))
        labels.append(np.full(samples_per_class, cls, dtype=np.int64))

    inputs = np.concatenate(inputs)
    labels = np.concatenate(labels)
    order = rng.permutation(len(inputs))
    return inputs[order], labels[order]
