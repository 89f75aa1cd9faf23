"""Double-entry accounting core for residential complex management."""

__version__ = "0.1.0"
