"""
Records produced by a training run.

Both are frozen: once the loop hands one out it never changes.
"""

from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class EpochRecord:
    """Summary statistics of a single epoch."""

    epoch: int
    train_loss: float
    val_loss: float
    train_accuracy: float
    val_accuracy: float

    def to_dict(self):
        """Convert to dictionary for serialization."""
        return asdict(self)


@dataclass(frozen=True)
class NonFiniteLoss:
    """Diagnostic for a batch whose loss was NaN or infinite."""

    epoch: int
    batch_index: int
    loss: float

    def to_dict(self):
        return asdict(self)
