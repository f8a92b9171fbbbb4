"""Citation extraction and categorization for answer-engine responses."""

__version__ = "0.3.0"
