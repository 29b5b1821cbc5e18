"""ragu: semantic search and question answering over tabular data."""

__version__ = "0.1.0"
