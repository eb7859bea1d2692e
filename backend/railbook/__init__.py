"""Train seat inventory and reservation booking service."""

__version__ = "1.0.0"
