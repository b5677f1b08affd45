"""
descent_trainer
~~~~~~~~~~~~~~~

Gradient-descent training loop for feed-forward digit classifiers.
"""

from pathlib import Path

__version__ = (Path(__file__).parent / "VERSION").read_text().strip()
