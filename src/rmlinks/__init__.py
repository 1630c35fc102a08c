"""Find and remove hard and symbolic links to a file."""

__version__ = "1.0.0"
