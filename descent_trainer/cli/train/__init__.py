from gettext import gettext as _
from pathlib import Path

COMMAND_DESCRIPTION = _("Train a feed-forward classifier with gradient descent")


def command(parser):
    parser.add_argument(
        "--data",
        dest="data_path",
        type=Path,
        default=None,
        help=_(
            "Dataset .npz archive with x_train/y_train (and optionally x_val/y_val). "
            "Synthetic blobs are used when omitted."
        ),
    )

    parser.add_argument(
        "-n",
        "--num-epochs",
        dest="num_epochs",
        type=int,
        default=None,
        help=_("Amount of epochs"),
    )

    parser.add_argument(
        "--batch-size",
        "-b",
        dest="batch_size",
        type=int,
        default=None,
        help=_("Samples per batch"),
    )

    parser.add_argument(
        "--lr",
        dest="lr",
        type=float,
        default=None,
        help=_("Learning rate"),
    )

    parser.add_argument(
        "--optimizer",
        dest="optimizer",
        choices=["sgd", "adam", "adamw"],
        default=None,
        help=_("Update rule"),
    )

    parser.add_argument(
        "--hidden",
        dest="hidden_sizes",
        type=int,
        nargs="*",
        default=None,
        help=_("Hidden layer widths"),
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help=_("Seed for initialization and batch shuffling"),
    )

    parser.add_argument(
        "--val-fraction",
        dest="val_fraction",
        type=float,
        default=None,
        help=_("Validation share when the dataset has no validation arrays"),
    )

    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help=_("Torch device, or 'auto'"),
    )

    parser.add_argument(
        "--history",
        dest="history_path",
        type=Path,
        default=None,
        help=_("Where to write the per-epoch log as JSON"),
    )

    parser.add_argument(
        "--save-model",
        dest="model_path",
        type=Path,
        default=None,
        help=_("Where to save the trained model state_dict"),
    )

    parser.add_argument(
        "--no-progress",
        dest="progress",
        action="store_false",
        help=_("Disable progress bars"),
    )

    def handle(args):
        from .train import handle as train_handle

        return train_handle(args)

    return handle
