"""askless: a developer Q&A board answered by a panel of bots."""

__version__ = "1.0.0"
