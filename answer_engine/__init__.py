"""Answer engine backend: web search grounded streaming answers."""

__version__ = "1.0.0"
