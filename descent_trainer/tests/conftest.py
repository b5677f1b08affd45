"""
Test fixtures and utilities for descent_trainer tests.

Provides small CPU models and synthetic batch sequences.
"""

import pytest
import torch
import torch.nn as nn

from descent_trainer.data import make_blobs, make_loader


@pytest.fixture(scope="session")
def device():
    """Get device for testing (prefer CPU for consistent tests)."""
    return torch.device("cpu")


@pytest.fixture
def loss_fn():
    return nn.CrossEntropyLoss()


@pytest.fixture
def separable_data():
    """Two well separated 2-D blobs, split 160/40."""
    inputs, labels = make_blobs(samples_per_class=100, num_classes=2, seed=3)
    return inputs[:160], labels[:160], inputs[160:], labels[160:]


@pytest.fixture
def separable_loaders(separable_data):
    x_train, y_train, x_val, y_val = separable_data
    train_loader = make_loader(x_train, y_train, batch_size=16, shuffle=True, seed=0)
    val_loader = make_loader(x_val, y_val, batch_size=16)
    return train_loader, val_loader


@pytest.fixture
def linear_model_factory():
    """Build identically initialised linear classifiers."""

    def build(in_features=2, num_classes=2, seed=0):
        torch.manual_seed(seed)
        return nn.Linear(in_features, num_classes)

    return build


def clone_parameters(model):
    return [p.detach().clone() for p in model.parameters()]


def parameters_equal(before, model):
    return all(torch.equal(b, p) for b, p in zip(before, model.parameters()))


@pytest.fixture
def snapshot():
    """Helpers to compare model parameters before and after a run."""
    return clone_parameters, parameters_equal
