"""Generation versioning and publish pipeline for generated websites."""

__version__ = "0.1.0"
