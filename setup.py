from setuptools import setup, find_packages
from pathlib import Path

setup(
    name="descent_trainer",
    version=Path("./descent_trainer/VERSION").read_text().strip(),
    packages=find_packages(exclude=["tests"]),
    package_data={
        "descent_trainer": ["VERSION", "i18n/*/LC_MESSAGES/*.mo"]
    },
    python_requires=">=3.8",
    install_requires=[
        "torch>=1.10",
        "numpy",
        "tqdm",
        "easydict",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "descent_trainer=descent_trainer.cli:main",
        ],
    },
)
