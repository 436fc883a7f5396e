"""
Benchmark result storage.
"""

from .datastore import Datastore, InMemoryDatastore, RestDatastore

__all__ = [
    "Datastore",
    "InMemoryDatastore",
    "RestDatastore",
]
