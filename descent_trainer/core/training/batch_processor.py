"""
Batch processing logic for classifier training.

Handles moving a batch to the device, label normalisation, the forward
pass and the loss evaluation.
"""

from typing import Any, Callable, Sequence, Tuple

import torch


def decode_labels(labels: torch.Tensor) -> torch.Tensor:
    """
    Return class indices for a label tensor.

    One-hot labels of shape (B, C) are decoded with an argmax over the
    last axis; index labels of shape (B,) are returned as long.
    """
    if labels.ndim > 1:
        return labels.argmax(dim=-1)
    return labels.long()


class BatchProcessor:
    """
    Processes (inputs, labels) batches for classifier training.

    Handles:
    - Device placement
    - Label dtype normalisation (indices -> long, one-hot -> float)
    - Forward pass and loss computation on the same graph
    """

    def __init__(
        self,
        model: torch.nn.Module,
        loss_fn: Callable[[torch.Tensor, torch.Tensor], torch.Tensor],
    ):
        """
        Initialize batch processor.

        Args:
            model: Classifier producing logits of shape (B, C)
            loss_fn: Callable taking (predictions, labels) -> scalar tensor
        """
        self.model = model
        self.loss_fn = loss_fn

    def process_batch(
        self,
        batch: Sequence[Any],
        device: torch.device,
    ) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
        """
        Process a single batch.

        Gradient tracking follows the caller's context, so the same call
        serves training and torch.no_grad() evaluation.

        Args:
            batch: (inputs, labels) pair
            device: Device to run on

        Returns:
            Tuple of (loss, predictions, labels)
        """
        inputs, labels = self._move_to_device(batch, device)
        labels = self._prepare_labels(labels)

        predictions = self.model(inputs)
        loss = self.loss_fn(predictions, labels)

        return loss, predictions, labels

    def _move_to_device(
        self, batch: Sequence[Any], device: torch.device
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        """Move batch tensors to device."""
        inputs, labels = batch
        return inputs.to(device), labels.to(device)

    def _prepare_labels(self, labels: torch.Tensor) -> torch.Tensor:
        # cross-entropy wants long indices or float probabilities
        if labels.ndim > 1:
            return labels.float()
        return labels.long()
