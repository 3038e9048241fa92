"""Property management desktop app over a local SQLite database."""

__version__ = "0.1.0"
