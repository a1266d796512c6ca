"""mdiary: a personal media diary for the terminal."""

__version__ = "0.1.0"
