"""Multi-step checkout session core."""

__version__ = "0.1.0"
