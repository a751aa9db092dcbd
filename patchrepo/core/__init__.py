"""Core engine: storage, manifest codec, resolution, ingestion and retrieval."""
