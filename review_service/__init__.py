"""Review invitation and balanced assignment service for films."""

__version__ = "1.0.0"
