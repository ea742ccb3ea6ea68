"""adlens: multi-platform advertising analytics backend."""

__version__ = "1.0.0"
