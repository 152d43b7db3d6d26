"""Hybrid document search: segmentation, fusion, ranking and synthesis."""

__version__ = "0.1.0"
