"""Single-user income/expense tracker backed by a JSON data file."""

__version__ = "0.1.0"
