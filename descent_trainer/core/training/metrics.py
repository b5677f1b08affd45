"""
Evaluation metrics over a sequence of batches.

Both metrics average per-batch values uniformly, so a short final batch
weighs as much as a full one.
"""

from typing import Any, Callable, Iterable, Optional, Tuple

import torch

from .batch_processor import BatchProcessor, decode_labels

LossFn = Callable[[torch.Tensor, torch.Tensor], torch.Tensor]


def batch_accuracy(predictions: torch.Tensor, labels: torch.Tensor) -> float:
    """Fraction of rows whose arg-max matches the label's class index."""
    predicted = predictions.argmax(dim=-1)
    expected = decode_labels(labels)
    return (predicted == expected).float().mean().item()


def _resolve_device(model: torch.nn.Module, device: Optional[torch.device]):
    if device is not None:
        return device
    param = next(model.parameters(), None)
    return param.device if param is not None else torch.device("cpu")


def evaluate(
    model: torch.nn.Module,
    batches: Iterable[Any],
    loss_fn: Optional[LossFn] = None,
    device: Optional[torch.device] = None,
) -> Tuple[Optional[float], float]:
    """
    Single pass over batches with updates disabled.

    Args:
        model: Classifier producing scores of shape (B, C)
        batches: Iterable of (inputs, labels) pairs
        loss_fn: Loss to average, skipped when None
        device: Device to evaluate on, defaults to the model's

    Returns:
        Tuple of (average loss or None, accuracy)
    """
    device = _resolve_device(model, device)
    if loss_fn is None:
        processor = BatchProcessor(model, lambda predictions, labels: None)
    else:
        processor = BatchProcessor(model, loss_fn)

    was_training = model.training
    model.eval()

    losses = []
    accuracies = []
    try:
        with torch.no_grad():
            for batch in batches:
                loss, predictions, labels = processor.process_batch(batch, device)
                if loss_fn is not None:
                    losses.append(loss.item())
                accuracies.append(batch_accuracy(predictions, labels))
    finally:
        model.train(was_training)

    if not accuracies:
        raise ValueError("Cannot compute metrics over an empty batch sequence")

    avg_loss = sum(losses) / len(losses) if loss_fn is not None else None
    return avg_loss, sum(accuracies) / len(accuracies)


def accuracy(
    model: torch.nn.Module,
    batches: Iterable[Any],
    device: Optional[torch.device] = None,
) -> float:
    """
    Fraction of correctly classified samples, averaged per batch.

    Returns:
        Mean of the per-batch accuracies, in [0, 1]
    """
    return evaluate(model, batches, loss_fn=None, device=device)[1]


def average_loss(
    model: torch.nn.Module,
    batches: Iterable[Any],
    loss_fn: LossFn,
    device: Optional[torch.device] = None,
) -> float:
    """Arithmetic mean of the per-batch losses."""
    return evaluate(model, batches, loss_fn=loss_fn, device=device)[0]
