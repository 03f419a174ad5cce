# setup.py
from setuptools import setup, find_packages

setup(
    name="mini-budget-tracker",
    version="0.1.0",
    description="A single-user income/expense tracker with a small JSON HTTP API and CSV/JSON import-export",
    packages=find_packages(include=["budget_tracker", "budget_tracker.*"]),
    python_requires=">=3.10",
    install_requires=[
        "click>=7.0",
        "pyyaml>=5.3",
        "pandas>=1.1",
        "python-dotenv>=0.19",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "budget-tracker=budget_tracker.cli:main",
            "budget-tracker-web=budget_tracker.web:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
