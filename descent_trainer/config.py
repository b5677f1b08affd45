"""Default run configuration."""

import os
from typing import Dict, Optional

from easydict import EasyDict as edict

from descent_trainer.utils.env import load_cfg_from_env


def default_config() -> edict:
    cfg = edict()
    cfg.seed = 42
    cfg.device = "auto"
    cfg.batch_size = 128
    cfg.num_epochs = 20
    cfg.num_workers = 0
    cfg.val_fraction = 0.1
    cfg.hidden_sizes = [128, 64]

    cfg.optimizer = edict()
    cfg.optimizer.name = "adam"
    cfg.optimizer.lr = 1e-3
    cfg.optimizer.weight_decay = 0.0
    cfg.optimizer.momentum = 0.0

    # 0 disables clipping
    cfg.gradient_clip_norm = 0.0
    return cfg


def load_config(env: Optional[Dict[str, str]] = None) -> edict:
    """Defaults overridden by DESCENT_* environment variables."""
    return load_cfg_from_env(default_config(), os.environ if env is None else env)
