"""Local Foundry deployment and broadcast artifact extraction."""

__version__ = "0.1.0"
