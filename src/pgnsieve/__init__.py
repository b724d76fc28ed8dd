"""Match-and-transform engine for PGN game collections."""

__version__ = "0.1.0"
