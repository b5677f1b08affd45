"""
Core training module.

Provides the training loop, its batch processor, evaluation metrics and
the metrics sink it reports to.
"""

from .loop import TrainingLoop, run
from .batch_processor import BatchProcessor, decode_labels
from .metrics import accuracy, average_loss, evaluate
from .metrics_tracker import MetricsTracker
from .records import EpochRecord, NonFiniteLoss

__all__ = [
    "TrainingLoop",
    "run",
    "BatchProcessor",
    "decode_labels",
    "accuracy",
    "average_loss",
    "evaluate",
    "MetricsTracker",
    "EpochRecord",
    "NonFiniteLoss",
]
