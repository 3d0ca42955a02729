"""Hugging Face Daily Papers ingestion and summary enrichment service."""

__version__ = "0.1.0"
