import logging
from gettext import gettext as _
from pathlib import Path

import numpy as np

from descent_trainer.data import make_blobs

logger = logging.getLogger(__name__)

COMMAND_DESCRIPTION = _("Write a synthetic Gaussian blobs dataset as .npz")


def command(parser):
    parser.add_argument("output", type=Path, help=_("Destination .npz file"))
    parser.add_argument(
        "--samples-per-class",
        dest="samples_per_class",
        type=int,
        default=100,
        help=_("Samples drawn for each class"),
    )
    parser.add_argument(
        "--num-classes",
        dest="num_classes",
        type=int,
        default=2,
        help=_("Number of classes"),
    )
    parser.add_argument(
        "--features",
        dest="num_features",
        type=int,
        default=2,
        help=_("Feature dimensionality"),
    )
    parser.add_argument(
        "--spread",
        type=float,
        default=0.5,
        help=_("Standard deviation of each blob"),
    )
    parser.add_argument("--seed", type=int, default=0, help=_("Random seed"))

    def handle(args):
        inputs, labels = make_blobs(
            samples_per_class=args.samples_per_class,
            num_classes=args.num_classes,
            num_features=args.num_features,
            spread=args.spread,
            seed=args.seed,
        )
        args.output.parent.mkdir(parents=True, exist_ok=True)
        np.savez(args.output, x_train=inputs, y_train=labels)
        logger.info(
            _("Wrote {count} samples to {path}").format(
                count=len(inputs), path=args.output
            )
        )
        return args.output

    return handle
