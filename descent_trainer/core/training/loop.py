"""
Training loop implementation.

Drives gradient steps over a fixed number of epochs and records per-epoch
loss and accuracy for the training and validation batches.
"""

from gettext import gettext as _
from typing import Optional, Dict, Any, Callable, Iterable, List
import logging
import math

import torch
from tqdm import tqdm

from .batch_processor import BatchProcessor
from .metrics import evaluate
from .metrics_tracker import MetricsTracker
from .records import EpochRecord, NonFiniteLoss

logger = logging.getLogger(__name__)


class TrainingLoop:
    """
    Training loop for feed-forward classifiers.

    Orchestrates:
    - Training epochs with one optimizer step per batch
    - Skipping batches whose loss is not finite
    - Evaluation passes over training and validation batches
    - Reporting to a metrics sink

    The model and optimizer are owned by the loop for the duration of a
    run; nothing else should step them concurrently.
    """

    def __init__(
        self,
        model: torch.nn.Module,
        optimizer: torch.optim.Optimizer,
        loss_fn: Callable[[torch.Tensor, torch.Tensor], torch.Tensor],
        device: Optional[torch.device] = None,
        scheduler: Optional[Any] = None,
        gradient_clip_norm: Optional[float] = None,
        reporter: Optional[MetricsTracker] = None,
        progress: bool = True,
        log_every_n_batches: int = 10,
    ):
        """
        Initialize training loop.

        Args:
            model: Model to train
            optimizer: Optimizer holding the update rule and its state
            loss_fn: Callable taking (predictions, labels) -> scalar tensor
            device: Device to train on
            scheduler: Learning rate scheduler, stepped once per epoch
            gradient_clip_norm: Gradient clipping norm
            reporter: Sink for epoch records and skipped-batch diagnostics
            progress: Show a tqdm progress bar over training batches
            log_every_n_batches: Progress bar refresh frequency
        """
        self.model = model
        self.optimizer = optimizer
        self.loss_fn = loss_fn
        self.batch_processor = BatchProcessor(model, loss_fn)
        self.scheduler = scheduler
        self.device = device or torch.device(
            "cuda" if torch.cuda.is_available() else "cpu"
        )
        self.gradient_clip_norm = gradient_clip_norm
        self.reporter = reporter if reporter is not None else MetricsTracker()
        self.progress = progress
        self.log_every_n_batches = log_every_n_batches

        # Records of the current (or last) run, readable after a failure
        self.history: List[EpochRecord] = []

        self.model.to(self.device)

    def run(
        self,
        train_batches: Iterable[Any],
        val_batches: Iterable[Any],
        max_epochs: int,
        callbacks: Optional[Dict[str, Callable]] = None,
    ) -> List[EpochRecord]:
        """
        Run training for exactly max_epochs epochs.

        Args:
            train_batches: Restartable iterable of (inputs, labels) pairs
            val_batches: Restartable iterable of (inputs, labels) pairs
            max_epochs: Number of epochs to train
            callbacks: Optional callbacks dict with keys:
                - 'on_epoch_start'
                - 'on_batch_end'
                - 'on_epoch_end'

        Returns:
            List of epoch records, ascending by epoch (1-based)
        """
        if max_epochs < 0:
            raise ValueError(f"max_epochs must be non-negative, got {max_epochs}")

        callbacks = callbacks or {}
        self.history = []
        self._reset_optimizer_state()

        logger.info(
            _("Starting training for {num_epochs} epochs").format(
                num_epochs=max_epochs
            )
        )
        logger.info(f"Device: {self.device}")
        if hasattr(train_batches, "__len__"):
            logger.info(f"Training batches: {len(train_batches)}")
        if hasattr(val_batches, "__len__"):
            logger.info(f"Validation batches: {len(val_batches)}")

        for epoch in range(1, max_epochs + 1):
            if "on_epoch_start" in callbacks:
                callbacks["on_epoch_start"](epoch)

            self._train_epoch(epoch, train_batches, callbacks)

            train_loss, train_accuracy = evaluate(
                self.model, train_batches, self.loss_fn, self.device
            )
            val_loss, val_accuracy = evaluate(
                self.model, val_batches, self.loss_fn, self.device
            )

            record = EpochRecord(
                epoch=epoch,
                train_loss=train_loss,
                val_loss=val_loss,
                train_accuracy=train_accuracy,
                val_accuracy=val_accuracy,
            )
            self.history.append(record)

            if self.scheduler is not None:
                if isinstance(
                    self.scheduler, torch.optim.lr_scheduler.ReduceLROnPlateau
                ):
                    self.scheduler.step(val_loss)
                else:
                    self.scheduler.step()

            self.reporter.on_epoch_end(record)

            if "on_epoch_end" in callbacks:
                callbacks["on_epoch_end"](epoch, record)

        logger.info(_("Training completed!"))
        return list(self.history)

    def _reset_optimizer_state(self):
        """Drop per-parameter state (moments, momentum buffers) from earlier runs."""
        self.optimizer.state.clear()
        self.optimizer.zero_grad()

    def _train_epoch(
        self,
        epoch: int,
        train_batches: Iterable[Any],
        callbacks: Dict[str, Callable],
    ):
        """Run one training epoch."""
        self.model.train()

        total_loss = 0.0
        num_updates = 0

        pbar = tqdm(
            train_batches, desc=f"Epoch {epoch} [Train]", disable=not self.progress
        )

        for batch_idx, batch in enumerate(pbar):
            loss = self.batch_processor.process_batch(batch, self.device)[0]
            loss_value = loss.item()

            skipped = not math.isfinite(loss_value)
            if skipped:
                # Parameters and optimizer state stay as they were
                self.reporter.on_non_finite_loss(
                    NonFiniteLoss(epoch=epoch, batch_index=batch_idx, loss=loss_value)
                )
            else:
                self._apply_update(loss)
                total_loss += loss_value
                num_updates += 1

                if (batch_idx + 1) % self.log_every_n_batches == 0:
                    pbar.set_postfix({"loss": f"{total_loss / num_updates:.4f}"})

            if "on_batch_end" in callbacks:
                callbacks["on_batch_end"](epoch, batch_idx, loss_value, skipped)

    def _apply_update(self, loss: torch.Tensor):
        self.optimizer.zero_grad()
        loss.backward()

        if self.gradient_clip_norm is not None:
            torch.nn.utils.clip_grad_norm_(
                self.model.parameters(), self.gradient_clip_norm
            )

        self.optimizer.step()


def run(
    model: torch.nn.Module,
    optimizer: torch.optim.Optimizer,
    train_batches: Iterable[Any],
    val_batches: Iterable[Any],
    loss_fn: Callable[[torch.Tensor, torch.Tensor], torch.Tensor],
    max_epochs: int,
    **kwargs,
) -> List[EpochRecord]:
    """
    Functional form of TrainingLoop.run.

    Extra keyword arguments go to the TrainingLoop constructor, except
    'callbacks' which goes to run.
    """
    callbacks = kwargs.pop("callbacks", None)
    loop = TrainingLoop(model=model, optimizer=optimizer, loss_fn=loss_fn, **kwargs)
    return loop.run(train_batches, val_batches, max_epochs, callbacks=callbacks)
