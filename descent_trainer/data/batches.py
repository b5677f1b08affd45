"""
Batch sequences for the training loop.

Wraps arrays in DataLoaders. Shuffling is driven by a seeded
torch.Generator, so every epoch draws a fresh order but two loaders built
with the same seed draw the same sequence of orders.
"""

import logging
from typing import Optional, Tuple

import numpy as np
import torch
from torch.utils.data import DataLoader, TensorDataset

logger = logging.getLogger(__name__)


def to_tensors(inputs, labels) -> Tuple[torch.Tensor, torch.Tensor]:
    """Convert array-likes to (float inputs, label) tensors."""
    inputs = torch.as_tensor(np.asarray(inputs), dtype=torch.float32)
    labels = torch.as_tensor(np.asarray(labels))
    if labels.ndim > 1:
        labels = labels.float()
    else:
        labels = labels.long()
    return inputs, labels


def one_hot(labels, num_classes: int) -> torch.Tensor:
    """Encode class indices as float one-hot vectors of shape (N, num_classes)."""
    labels = torch.as_tensor(np.asarray(labels)).long()
    return torch.nn.functional.one_hot(labels, num_classes).float()


def make_loader(
    inputs,
    labels,
    batch_size: int,
    shuffle: bool = False,
    seed: Optional[int] = None,
    num_workers: int = 0,
) -> DataLoader:
    """
    Build a restartable batch sequence.

    Args:
        inputs: Array-like of shape (N, *feature_dims)
        labels: Array-like of class indices (N,) or one-hot vectors (N, C)
        batch_size: Samples per batch; the last batch may be smaller
        shuffle: Re-draw the order every epoch
        seed: Seed for the shuffling generator
        num_workers: DataLoader worker processes
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    inputs, labels = to_tensors(inputs, labels)
    if len(inputs) != len(labels):
        raise ValueError(
            f"inputs and labels differ in length: {len(inputs)} != {len(labels)}"
        )

    generator = None
    if shuffle:
        generator = torch.Generator()
        if seed is not None:
            generator.manual_seed(seed)

    return DataLoader(
        TensorDataset(inputs, labels),
        batch_size=batch_size,
        shuffle=shuffle,
        generator=generator,
        num_workers=num_workers,
    )


def split_train_val(
    inputs: np.ndarray,
    labels: np.ndarray,
    val_fraction: float,
    seed: int = 0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Hold out a seeded random fraction of the samples for validation.

    Returns:
        Tuple of (x_train, y_train, x_val, y_val)
    """
    if not 0.0 < val_fraction < 1.0:
        raise ValueError(f"val_fraction must be in (0, 1), got {val_fraction}")

    num_samples = len(inputs)
    num_val = max(1, int(round(num_samples * val_fraction)))
    if num_val >= num_samples:
        raise ValueError(
            f"Not enough samples ({num_samples}) for a {val_fraction} validation split"
        )

    order = np.random.RandomState(seed).permutation(num_samples)
    val_idx, train_idx = order[:num_val], order[num_val:]
    logger.debug(f"Split {num_samples} samples into {len(train_idx)}/{num_val}")
    return inputs[train_idx], labels[train_idx], inputs[val_idx], labels[val_idx]
