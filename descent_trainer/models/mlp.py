"""Feed-forward digit classifier."""

from typing import Sequence

import torch
import torch.nn as nn


class MLPClassifier(nn.Module):
    """
    Stack of fully connected layers with ReLU activations.

    Inputs of any trailing shape are flattened first, so 28x28 images and
    784-long vectors are both accepted. Outputs raw logits of shape (B, C).
    """

    def __init__(
        self,
        in_features: int,
        num_classes: int,
        hidden_sizes: Sequence[int] = (128, 64),
    ) -> None:
        super().__init__()
        self.in_features = in_features
        self.num_classes = num_classes
        self.hidden_sizes = tuple(hidden_sizes)

        layers: list = [nn.Flatten()]
        width = in_features
        for hidden in self.hidden_sizes:
            layers.append(nn.Linear(width, hidden))
            layers.append(nn.ReLU())
            width = hidden
        layers.append(nn.Linear(width, num_classes))
        self.net = nn.Sequential(*layers)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.net(x)

    def num_parameters(self) -> int:
        return sum(p.numel() for p in self.parameters() if p.requires_grad)
