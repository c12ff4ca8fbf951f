"""Chess rules engine with a minimax search opponent."""

__version__ = "0.1.0"
