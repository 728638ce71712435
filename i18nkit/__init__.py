"""Extract hard-coded text from React and Vue projects and manage its translations."""

__all__ = ["__version__"]

__version__ = "0.1.0"
