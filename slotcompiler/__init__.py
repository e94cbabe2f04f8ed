"""Layout-merging static page compiler."""

__version__ = "0.1.0"
