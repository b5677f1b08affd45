"""
Tests for TrainingLoop with real PyTorch components.

Tests epoch bookkeeping, the non-finite loss guard, determinism and
convergence on separable data.
"""

import math

import pytest
import torch
import torch.nn as nn

from descent_trainer.core.training import (
    EpochRecord,
    MetricsTracker,
    TrainingLoop,
    run,
)
from descent_trainer.data import make_loader, one_hot


class RestartableBatches:
    """List of batches that counts traversals and can fail on one of them."""

    def __init__(self, batches, fail_on_traversal=None):
        self.batches = list(batches)
        self.fail_on_traversal = fail_on_traversal
        self.traversals = 0

    def __iter__(self):
        self.traversals += 1
        if self.traversals == self.fail_on_traversal:
            raise RuntimeError("dataset exploded")
        return iter(self.batches)

    def __len__(self):
        return len(self.batches)


def make_loop(model, device, optimizer=None, **kwargs):
    optimizer = optimizer or torch.optim.SGD(model.parameters(), lr=0.1)
    kwargs.setdefault("progress", False)
    return TrainingLoop(
        model=model,
        optimizer=optimizer,
        loss_fn=nn.CrossEntropyLoss(),
        device=device,
        **kwargs,
    )


def nan_batch():
    return torch.full((4, 2), float("nan")), torch.zeros(4, dtype=torch.long)


def good_batch():
    inputs = torch.tensor([[2.0, 0.0], [-2.0, 0.0], [1.5, 0.3], [-1.5, -0.3]])
    labels = torch.tensor([0, 1, 0, 1])
    return inputs, labels


class TestTrainingLoop:
    """Test epoch bookkeeping."""

    def test_single_epoch(self, linear_model_factory, separable_loaders, device):
        train_loader, val_loader = separable_loaders
        loop = make_loop(linear_model_factory(), device)

        records = loop.run(train_loader, val_loader, max_epochs=1)

        assert len(records) == 1
        record = records[0]
        assert isinstance(record, EpochRecord)
        assert record.epoch == 1
        assert record.train_loss >= 0
        assert record.val_loss >= 0
        assert 0.0 <= record.train_accuracy <= 1.0
        assert 0.0 <= record.val_accuracy <= 1.0

    @pytest.mark.parametrize("max_epochs", [0, 1, 3])
    def test_epoch_count(
        self, linear_model_factory, separable_loaders, device, max_epochs
    ):
        train_loader, val_loader = separable_loaders
        loop = make_loop(linear_model_factory(), device)

        records = loop.run(train_loader, val_loader, max_epochs=max_epochs)

        assert len(records) == max_epochs
        assert [r.epoch for r in records] == list(range(1, max_epochs + 1))

    def test_zero_epochs_leaves_parameters_untouched(
        self, linear_model_factory, separable_loaders, device, snapshot
    ):
        clone_parameters, parameters_equal = snapshot
        train_loader, val_loader = separable_loaders
        model = linear_model_factory()
        before = clone_parameters(model)

        records = make_loop(model, device).run(train_loader, val_loader, 0)

        assert records == []
        assert parameters_equal(before, model)

    def test_negative_epochs_rejected(
        self, linear_model_factory, separable_loaders, device
    ):
        train_loader, val_loader = separable_loaders
        loop = make_loop(linear_model_factory(), device)

        with pytest.raises(ValueError):
            loop.run(train_loader, val_loader, max_epochs=-1)

    def test_records_are_frozen(self, linear_model_factory, separable_loaders, device):
        train_loader, val_loader = separable_loaders
        records = make_loop(linear_model_factory(), device).run(
            train_loader, val_loader, 1
        )

        with pytest.raises(AttributeError):
            records[0].epoch = 5

    def test_returned_log_is_owned_by_caller(
        self, linear_model_factory, separable_loaders, device
    ):
        train_loader, val_loader = separable_loaders
        loop = make_loop(linear_model_factory(), device)

        records = loop.run(train_loader, val_loader, 2)
        records.clear()

        assert len(loop.history) == 2

    def test_callbacks(self, linear_model_factory, separable_loaders, device):
        train_loader, val_loader = separable_loaders
        loop = make_loop(linear_model_factory(), device)

        seen = {"starts": [], "ends": [], "batches": 0}

        def on_epoch_start(epoch):
            seen["starts"].append(epoch)

        def on_batch_end(epoch, batch_idx, loss, skipped):
            seen["batches"] += 1

        def on_epoch_end(epoch, record):
            seen["ends"].append(record.epoch)

        loop.run(
            train_loader,
            val_loader,
            max_epochs=3,
            callbacks={
                "on_epoch_start": on_epoch_start,
                "on_batch_end": on_batch_end,
                "on_epoch_end": on_epoch_end,
            },
        )

        assert seen["starts"] == [1, 2, 3]
        assert seen["ends"] == [1, 2, 3]
        assert seen["batches"] == 3 * len(train_loader)

    def test_reporter_receives_every_record(
        self, linear_model_factory, separable_loaders, device
    ):
        train_loader, val_loader = separable_loaders
        reporter = MetricsTracker()
        loop = make_loop(linear_model_factory(), device, reporter=reporter)

        records = loop.run(train_loader, val_loader, max_epochs=2)

        assert reporter.get_history() == records

    def test_functional_run(self, linear_model_factory, separable_loaders, device):
        train_loader, val_loader = separable_loaders
        model = linear_model_factory()
        optimizer = torch.optim.SGD(model.parameters(), lr=0.1)

        records = run(
            model,
            optimizer,
            train_loader,
            val_loader,
            nn.CrossEntropyLoss(),
            2,
            device=device,
            progress=False,
        )

        assert [r.epoch for r in records] == [1, 2]


class TestNonFiniteGuard:
    """Test that pathological batches are skipped, not applied."""

    def test_nan_batch_leaves_parameters_unchanged(
        self, linear_model_factory, device, snapshot
    ):
        clone_parameters, parameters_equal = snapshot
        model = linear_model_factory()
        before = clone_parameters(model)
        reporter = MetricsTracker()
        loop = make_loop(model, device, reporter=reporter)

        loop.run([nan_batch()], [good_batch()], max_epochs=1)

        assert parameters_equal(before, model)
        diagnostics = reporter.get_diagnostics()
        assert len(diagnostics) == 1
        assert diagnostics[0].epoch == 1
        assert diagnostics[0].batch_index == 0
        assert math.isnan(diagnostics[0].loss)

    def test_later_batches_still_execute(
        self, linear_model_factory, device, snapshot
    ):
        clone_parameters, parameters_equal = snapshot
        model = linear_model_factory()
        before = clone_parameters(model)
        loop = make_loop(model, device)

        batch_log = []

        def on_batch_end(epoch, batch_idx, loss, skipped):
            batch_log.append((batch_idx, skipped))

        loop.run(
            [nan_batch(), good_batch(), good_batch()],
            [good_batch()],
            max_epochs=1,
            callbacks={"on_batch_end": on_batch_end},
        )

        assert batch_log == [(0, True), (1, False), (2, False)]
        assert not parameters_equal(before, model)

    def test_infinite_loss_is_skipped(self, linear_model_factory, device, snapshot):
        clone_parameters, parameters_equal = snapshot
        model = linear_model_factory()
        before = clone_parameters(model)
        optimizer = torch.optim.Adam(model.parameters(), lr=0.1)
        reporter = MetricsTracker()

        def infinite_loss(predictions, labels):
            return nn.functional.cross_entropy(predictions, labels) * float("inf")

        loop = TrainingLoop(
            model=model,
            optimizer=optimizer,
            loss_fn=infinite_loss,
            device=device,
            reporter=reporter,
            progress=False,
        )
        loop.run([good_batch(), good_batch()], [good_batch()], max_epochs=2)

        assert parameters_equal(before, model)
        assert len(optimizer.state) == 0
        assert [d.batch_index for d in reporter.get_diagnostics()] == [0, 1, 0, 1]
        assert all(math.isinf(d.loss) for d in reporter.get_diagnostics())


class TestFailures:
    """Collaborator errors abort the run and keep the partial log."""

    def test_collaborator_error_propagates_with_partial_log(
        self, linear_model_factory, device
    ):
        # traversals per epoch: training pass + evaluation pass
        train_batches = RestartableBatches([good_batch()], fail_on_traversal=3)
        loop = make_loop(linear_model_factory(), device)

        with pytest.raises(RuntimeError, match="dataset exploded"):
            loop.run(train_batches, [good_batch()], max_epochs=5)

        assert [r.epoch for r in loop.history] == [1]

    def test_shape_mismatch_is_fatal(self, linear_model_factory, device):
        bad_batch = (torch.zeros(4, 3), torch.zeros(4, dtype=torch.long))
        loop = make_loop(linear_model_factory(), device)

        with pytest.raises(RuntimeError):
            loop.run([bad_batch], [good_batch()], max_epochs=1)

        assert loop.history == []


class TestDeterminism:
    def test_same_seed_same_records(self, linear_model_factory, separable_data, device):
        x_train, y_train, x_val, y_val = separable_data

        def train_once():
            model = linear_model_factory(seed=7)
            optimizer = torch.optim.Adam(model.parameters(), lr=0.05)
            train_loader = make_loader(
                x_train, y_train, batch_size=16, shuffle=True, seed=11
            )
            val_loader = make_loader(x_val, y_val, batch_size=16)
            loop = make_loop(model, device, optimizer=optimizer)
            return loop.run(train_loader, val_loader, max_epochs=3)

        assert train_once() == train_once()

    def test_training_order_is_reshuffled_each_epoch(self, separable_data):
        x_train, y_train, _x_val, _y_val = separable_data
        loader = make_loader(x_train, y_train, batch_size=160, shuffle=True, seed=0)

        first = next(iter(loader))[1]
        second = next(iter(loader))[1]

        assert sorted(first.tolist()) == sorted(second.tolist())
        assert not torch.equal(first, second)


class TestConvergence:
    def test_loss_drops_on_separable_data(
        self, linear_model_factory, separable_loaders, device
    ):
        train_loader, val_loader = separable_loaders
        model = linear_model_factory()
        optimizer = torch.optim.Adam(model.parameters(), lr=0.05)
        loop = make_loop(model, device, optimizer=optimizer)

        records = loop.run(train_loader, val_loader, max_epochs=30)

        assert records[-1].train_loss < 0.1
        assert records[-1].train_loss < records[0].train_loss
        assert records[-1].val_accuracy > 0.95

    def test_one_hot_labels(self, linear_model_factory, separable_data, device):
        x_train, y_train, x_val, y_val = separable_data
        train_loader = make_loader(
            x_train, one_hot(y_train, 2), batch_size=16, shuffle=True, seed=0
        )
        val_loader = make_loader(x_val, one_hot(y_val, 2), batch_size=16)
        optimizer_model = linear_model_factory()
        optimizer = torch.optim.Adam(optimizer_model.parameters(), lr=0.05)
        loop = make_loop(optimizer_model, device, optimizer=optimizer)

        records = loop.run(train_loader, val_loader, max_epochs=10)

        assert records[-1].train_accuracy > 0.95


class TestOptimizerHandling:
    def test_optimizer_state_reset_between_runs(
        self, linear_model_factory, separable_loaders, device
    ):
        train_loader, val_loader = separable_loaders
        model = linear_model_factory()
        optimizer = torch.optim.Adam(model.parameters(), lr=0.01)
        loop = make_loop(model, device, optimizer=optimizer)

        loop.run(train_loader, val_loader, max_epochs=1)
        assert len(optimizer.state) > 0

        state_sizes = []
        loop.run(
            train_loader,
            val_loader,
            max_epochs=1,
            callbacks={"on_epoch_start": lambda epoch: state_sizes.append(len(optimizer.state))},
        )
        assert state_sizes == [0]

    def test_training_with_scheduler(
        self, linear_model_factory, separable_loaders, device
    ):
        train_loader, val_loader = separable_loaders
        model = linear_model_factory()
        optimizer = torch.optim.SGD(model.parameters(), lr=0.1)
        scheduler = torch.optim.lr_scheduler.StepLR(optimizer, step_size=1, gamma=0.5)
        loop = make_loop(model, device, optimizer=optimizer, scheduler=scheduler)

        loop.run(train_loader, val_loader, max_epochs=2)

        assert optimizer.param_groups[0]["lr"] == pytest.approx(0.025)

    def test_plateau_scheduler_receives_validation_loss(
        self, linear_model_factory, device
    ):
        model = linear_model_factory()
        optimizer = torch.optim.SGD(model.parameters(), lr=0.1)
        scheduler = torch.optim.lr_scheduler.ReduceLROnPlateau(
            optimizer, patience=0, factor=0.5
        )
        loop = make_loop(model, device, optimizer=optimizer, scheduler=scheduler)

        # every training batch is skipped, so the validation loss never moves
        records = loop.run([nan_batch()], [good_batch()], max_epochs=3)

        assert len({record.val_loss for record in records}) == 1
        assert optimizer.param_groups[0]["lr"] == pytest.approx(0.025)

    def test_gradient_clipping(self, linear_model_factory, separable_loaders, device):
        train_loader, val_loader = separable_loaders
        loop = make_loop(linear_model_factory(), device, gradient_clip_norm=1.0)

        records = loop.run(train_loader, val_loader, max_epochs=1)

        assert len(records) == 1
