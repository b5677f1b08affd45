"""
Metrics tracking for training.

Sink for epoch records and skipped-batch diagnostics.
"""

from gettext import gettext as _
from typing import Dict, List, Optional, Tuple
import logging

from .records import EpochRecord, NonFiniteLoss

logger = logging.getLogger(__name__)

# Metric name -> whether a higher value is better
TRACKED_METRICS = {
    "train_loss": False,
    "val_loss": False,
    "train_accuracy": True,
    "val_accuracy": True,
}


class MetricsTracker:
    """
    Receives progress from the training loop.

    Features:
    - Log every epoch record and every skipped batch
    - Keep the history of records and diagnostics
    - Track best values per metric
    """

    def __init__(self, log_epochs: bool = True):
        """
        Initialize metrics tracker.

        Args:
            log_epochs: Whether to log a summary line per epoch
        """
        self.log_epochs = log_epochs

        self._history: List[EpochRecord] = []
        self._diagnostics: List[NonFiniteLoss] = []

        # Best values: metric -> (value, epoch)
        self._best_values: Dict[str, Tuple[float, int]] = {}

    def on_epoch_end(self, record: EpochRecord):
        """Store an epoch record and update best values."""
        self._history.append(record)

        for name, higher_is_better in TRACKED_METRICS.items():
            value = getattr(record, name)
            if value != value:  # NaN never becomes the best
                continue
            best = self._best_values.get(name)
            if (
                best is None
                or (higher_is_better and value > best[0])
                or (not higher_is_better and value < best[0])
            ):
                self._best_values[name] = (value, record.epoch)

        if self.log_epochs:
            self.log_epoch_metrics(record)

    def on_non_finite_loss(self, diagnostic: NonFiniteLoss):
        """Store and log a skipped batch."""
        self._diagnostics.append(diagnostic)
        logger.warning(
            _(
                "Skipping update: non-finite loss {loss} at epoch {epoch}, batch {batch}"
            ).format(
                loss=diagnostic.loss,
                epoch=diagnostic.epoch,
                batch=diagnostic.batch_index,
            )
        )

    def get_best_value(self, metric_name: str) -> Optional[Tuple[float, int]]:
        """
        Get best value for a metric.

        Args:
            metric_name: Name of an EpochRecord field

        Returns:
            Tuple of (value, epoch) or None
        """
        return self._best_values.get(metric_name)

    def get_history(self) -> List[EpochRecord]:
        """Get all epoch records received so far."""
        return list(self._history)

    def get_diagnostics(self) -> List[NonFiniteLoss]:
        """Get all skipped-batch diagnostics received so far."""
        return list(self._diagnostics)

    def get_last_epoch_metrics(self) -> Optional[EpochRecord]:
        if self._history:
            return self._history[-1]
        return None

    def reset(self):
        """Reset all tracking."""
        self._history.clear()
        self._diagnostics.clear()
        self._best_values.clear()

    def log_epoch_metrics(self, record: EpochRecord):
        metrics_str = ", ".join(
            f"{name}: {getattr(record, name):.4f}" for name in TRACKED_METRICS
        )
        logger.info(f"Epoch {record.epoch} metrics: {metrics_str}")
