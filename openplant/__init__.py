"""Codecs, request encoding, connections, pooling and point caching for OpenPlant databases."""

__version__ = "0.1.0"