"""Optimizer construction from configuration."""

import logging
from typing import Tuple

import torch
import torch.nn as nn

logger = logging.getLogger(__name__)

SUPPORTED_OPTIMIZERS = ("sgd", "adam", "adamw")


def create_optimizer(
    model: nn.Module,
    optimizer_type: str = "adam",
    learning_rate: float = 1e-3,
    weight_decay: float = 0.0,
    momentum: float = 0.0,
    betas: Tuple[float, float] = (0.9, 0.999),
) -> torch.optim.Optimizer:
    """Create optimizer based on configuration.

    Args:
        model: The model to optimize
        optimizer_type: Type of optimizer ("sgd", "adam", "adamw")
        learning_rate: Learning rate
        weight_decay: Weight decay
        momentum: Momentum for SGD
        betas: Beta values for Adam/AdamW

    Returns:
        Configured optimizer
    """
    optimizer_type = optimizer_type.lower()
    params = [p for p in model.parameters() if p.requires_grad]

    logger.debug(f"Creating {optimizer_type} optimizer with lr={learning_rate}")

    if optimizer_type == "sgd":
        return torch.optim.SGD(
            params, lr=learning_rate, momentum=momentum, weight_decay=weight_decay
        )

    elif optimizer_type == "adam":
        return torch.optim.Adam(
            params, lr=learning_rate, betas=betas, weight_decay=weight_decay
        )

    elif optimizer_type == "adamw":
        return torch.optim.AdamW(
            params, lr=learning_rate, betas=betas, weight_decay=weight_decay
        )

    else:
        raise ValueError(
            f"Unknown optimizer type: {optimizer_type!r}. "
            f"Use one of {', '.join(SUPPORTED_OPTIMIZERS)}."
        )
