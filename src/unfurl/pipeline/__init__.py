"""Ingestion pipeline: collection, resolution, extraction and retries."""
