"""Data access layer - Database models, connections and figure storage."""

from .db_models import Base, Document, Page, FigureImage
from .database import (
    DatabaseManager,
    get_database,
    session_scope,
)
from .repositories import (
    DocumentRepository,
    PageRepository,
    FigureImageRepository,
)
from .blob_store import BlobStore, InMemoryBlobStore, FigureBlobStore

__all__ = [
    # Models
    'Base',
    'Document',
    'Page',
    'FigureImage',

    # Database
    'DatabaseManager',
    'get_database',
    'session_scope',

    # Repositories
    'DocumentRepository',
    'PageRepository',
    'FigureImageRepository',

    # Blob storage
    'BlobStore',
    'InMemoryBlobStore',
    'FigureBlobStore',
]
