"""simforge - author multi-agent simulations and export runner configurations."""

__version__ = "0.1.0"
