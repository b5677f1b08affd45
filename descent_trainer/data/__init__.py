from .batches import make_loader, one_hot, split_train_val, to_tensors
from .npz import DatasetSplits, load_npz, preprocess_inputs
from .synthetic import make_blobs

__all__ = [
    "make_loader",
    "one_hot",
    "split_train_val",
    "to_tensors",
    "DatasetSplits",
    "load_npz",
    "preprocess_inputs",
    "make_blobs",
]
