"""Agent trade webhook: executes agent platform trade events as Jupiter swaps."""

__version__ = "0.1.0"
