import json
import logging
import math
import os
from gettext import gettext as _

import torch
import torch.nn as nn

from descent_trainer.config import load_config
from descent_trainer.core.training import MetricsTracker, TrainingLoop
from descent_trainer.data import DatasetSplits, load_npz, make_blobs, make_loader
from descent_trainer.data import split_train_val
from descent_trainer.models import MLPClassifier
from descent_trainer.utils.misc import get_device, seed_everything
from descent_trainer.utils.optimizers import create_optimizer

logger = logging.getLogger(__name__)


def apply_cli_overrides(cfg, args):
    """CLI flags win over environment and defaults."""
    if args.num_epochs is not None:
        cfg.num_epochs = args.num_epochs
    if args.batch_size is not None:
        cfg.batch_size = args.batch_size
    if args.lr is not None:
        cfg.optimizer.lr = args.lr
    if args.optimizer is not None:
        cfg.optimizer.name = args.optimizer
    if args.hidden_sizes is not None:
        cfg.hidden_sizes = list(args.hidden_sizes)
    if args.seed is not None:
        cfg.seed = args.seed
    if args.val_fraction is not None:
        cfg.val_fraction = args.val_fraction
    if args.device is not None:
        cfg.device = args.device
    return cfg


def history_entry(record):
    """Record as a strict-JSON dict, non-finite metrics become null."""
    entry = record.to_dict()
    for key, value in entry.items():
        if isinstance(value, float) and not math.isfinite(value):
            entry[key] = None
    return entry


def load_splits(cfg, data_path) -> DatasetSplits:
    if data_path is not None:
        return load_npz(data_path, val_fraction=cfg.val_fraction, seed=cfg.seed)

    logger.info(_("No dataset given, training on synthetic blobs"))
    inputs, labels = make_blobs(
        samples_per_class=250, num_classes=4, num_features=2, seed=cfg.seed
    )
    return DatasetSplits(*split_train_val(inputs, labels, cfg.val_fraction, cfg.seed))


def handle(args):
    cfg = apply_cli_overrides(load_config(os.environ), args)
    logger.debug(f"Configuration: {dict(cfg)}")

    seed_everything(cfg.seed)
    device = get_device(cfg.device)

    splits = load_splits(cfg, args.data_path)
    train_batches = make_loader(
        splits.x_train,
        splits.y_train,
        batch_size=cfg.batch_size,
        shuffle=True,
        seed=cfg.seed,
        num_workers=cfg.num_workers,
    )
    val_batches = make_loader(
        splits.x_val,
        splits.y_val,
        batch_size=cfg.batch_size,
        num_workers=cfg.num_workers,
    )

    model = MLPClassifier(
        in_features=splits.num_features,
        num_classes=splits.num_classes,
        hidden_sizes=cfg.hidden_sizes,
    )
    logger.info(f"Model size: {model.num_parameters():,} parameters")

    optimizer = create_optimizer(
        model,
        optimizer_type=cfg.optimizer.name,
        learning_rate=cfg.optimizer.lr,
        weight_decay=cfg.optimizer.weight_decay,
        momentum=cfg.optimizer.momentum,
    )

    loop = TrainingLoop(
        model=model,
        optimizer=optimizer,
        loss_fn=nn.CrossEntropyLoss(),
        device=device,
        gradient_clip_norm=cfg.gradient_clip_norm or None,
        reporter=MetricsTracker(),
        progress=args.progress,
    )
    records = loop.run(train_batches, val_batches, max_epochs=cfg.num_epochs)

    if records:
        best_acc, best_epoch = loop.reporter.get_best_value("val_accuracy")
        logger.info(
            _("Best validation accuracy {acc:.4f} at epoch {epoch}").format(
                acc=best_acc, epoch=best_epoch
            )
        )

    if args.history_path is not None:
        args.history_path.parent.mkdir(parents=True, exist_ok=True)
        args.history_path.write_text(
            json.dumps(
                [history_entry(record) for record in records],
                indent=2,
                allow_nan=False,
            )
        )
        logger.info(f"Saved training log to {args.history_path}")

    if args.model_path is not None:
        args.model_path.parent.mkdir(parents=True, exist_ok=True)
        torch.save(model.state_dict(), args.model_path)
        logger.info(f"Saved model to {args.model_path}")

    return records
