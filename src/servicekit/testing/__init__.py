"""Testing utilities for services built on servicekit.

Provides in-memory stand-ins for external services to enable fast, isolated testing.
"""
from src.servicekit.testing.mocks import InMemoryPipeline, InMemoryRedis

__all__ = [
    # Cache
    "InMemoryRedis",
    "InMemoryPipeline",
]
