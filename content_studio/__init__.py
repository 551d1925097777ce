"""Content Studio: generated content review, scheduling and posting."""

__version__ = "0.1.0"
