"""
Document store adapters: uniform download/upload/list over a key-blob object store.
"""

from .index import IDocumentStore, InMemoryDocumentStore
from .local_store import LocalDocumentStore
from .supabase_store import SupabaseDocumentStore
from .types import StoredObject, StoreError, NotFoundError, ConflictError

__all__ = [
    'IDocumentStore',
    'InMemoryDocumentStore',
    'LocalDocumentStore',
    'SupabaseDocumentStore',
    'StoredObject',
    'StoreError',
    'NotFoundError',
    'ConflictError'
]
