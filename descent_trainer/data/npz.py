"""
Loading of digit datasets stored as .npz archives.

Expected keys are x_train and y_train, optionally x_val and y_val. The
train_images/train_labels/val_images/val_labels layout is accepted too.
Images are flattened to one row per sample; integer pixel data is scaled
to [0, 1].
"""

import logging
from dataclasses import dataclass
from gettext import gettext as _
from pathlib import Path
from typing import Optional

import numpy as np

from .batches import split_train_val

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("x_train", "y_train")
VALIDATION_KEYS = ("x_val", "y_val")

PIXEL_MAX = 255.0

# canonical name -> alternative name
KEY_ALIASES = {
    "x_train": "train_images",
    "y_train": "train_labels",
    "x_val": "val_images",
    "y_val": "val_labels",
}


def _get(archive, key):
    if key in archive.files:
        return archive[key]
    if KEY_ALIASES[key] in archive.files:
        return archive[KEY_ALIASES[key]]
    return None


@dataclass
class DatasetSplits:
    """Preprocessed train/validation arrays."""

    x_train: np.ndarray
    y_train: np.ndarray
    x_val: np.ndarray
    y_val: np.ndarray

    @property
    def num_features(self) -> int:
        return int(self.x_train.shape[1])

    @property
    def num_classes(self) -> int:
        if self.y_train.ndim > 1:
            return int(self.y_train.shape[1])
        return int(max(self.y_train.max(), self.y_val.max())) + 1


def preprocess_inputs(inputs: np.ndarray) -> np.ndarray:
    """
    Flatten samples and scale integer pixel data to [0, 1].

    Integer arrays of any width are read as 8-bit intensities, so values
    must lie in 0..255. Float arrays are assumed to be scaled already.
    """
    inputs = np.asarray(inputs)
    is_integer = np.issubdtype(inputs.dtype, np.integer)
    if is_integer and inputs.size:
        low, high = inputs.min(), inputs.max()
        if low < 0 or high > PIXEL_MAX:
            raise ValueError(
                f"Integer pixel values must lie in 0..255, got {low}..{high}"
            )
    flat = inputs.reshape(len(inputs), -1).astype(np.float32)
    if is_integer:
        flat /= PIXEL_MAX
    return flat


def load_npz(
    path: Path, val_fraction: float = 0.1, seed: int = 0
) -> DatasetSplits:
    """
    Load and preprocess a dataset archive.

    Args:
        path: Path to the .npz file
        val_fraction: Fraction held out when the archive has no validation arrays
        seed: Seed for that split
    """
    path = Path(path)
    logger.info(_("Loading dataset from {path}").format(path=path))

    with np.load(path) as archive:
        arrays = {key: _get(archive, key) for key in KEY_ALIASES}

    missing = [key for key in REQUIRED_KEYS if arrays[key] is None]
    if missing:
        raise ValueError(f"{path} is missing required arrays: {missing}")

    present = [key for key in VALIDATION_KEYS if arrays[key] is not None]
    if len(present) == 1:
        raise ValueError(
            f"{path} has {present[0]} without its counterpart; "
            f"provide both of {list(VALIDATION_KEYS)} or neither"
        )

    x_train = preprocess_inputs(arrays["x_train"])
    y_train = np.asarray(arrays["y_train"])
    x_val: Optional[np.ndarray] = None
    y_val: Optional[np.ndarray] = None
    if present:
        x_val = preprocess_inputs(arrays["x_val"])
        y_val = np.asarray(arrays["y_val"])

    if x_val is None:
        x_train, y_train, x_val, y_val = split_train_val(
            x_train, y_train, val_fraction, seed=seed
        )

    logger.info(f"Data loaded: {len(x_train)} training, {len(x_val)} validation")
    return DatasetSplits(x_train, y_train, x_val, y_val)
