"""Shopping offer lookup bot backed by SerpApi Google Shopping."""

__version__ = "0.1.0"
