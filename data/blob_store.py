"""
Blob stores for cropped figure images.

The figure pipeline only needs ``put(key, data)``; keys are generated by the
caller and are assumed unique.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from .repositories import FigureImageRepository


class BlobStore(ABC):
    """Opaque key -> bytes store."""

    @abstractmethod
    def put(self, key: str, data: bytes, **metadata) -> None:
        """
        Store ``data`` under ``key``.

        Args:
            key: Caller-generated unique identifier
            data: Encoded image bytes
            **metadata: Optional descriptive fields (caption, phash, width, ...)
        """
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the bytes stored under ``key``, or None."""
        pass

    def exists(self, key: str) -> bool:
        return self.get(key) is not None


class InMemoryBlobStore(BlobStore):
    """Dictionary-backed store for tests and dry runs."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.metadata: Dict[str, dict] = {}

    def put(self, key: str, data: bytes, **metadata) -> None:
        self.blobs[key] = data
        self.metadata[key] = metadata

    def get(self, key: str) -> Optional[bytes]:
        return self.blobs.get(key)

    def keys(self) -> List[str]:
        return list(self.blobs)

    def __len__(self) -> int:
        return len(self.blobs)


class FigureBlobStore(BlobStore):
    """Stores figures in the ``figure_images`` table."""

    def __init__(self, session: Session):
        """
        Initialize figure store.

        Args:
            session: SQLAlchemy database session
        """
        self.repository = FigureImageRepository(session)

    def put(self, key: str, data: bytes, **metadata) -> None:
        self.repository.create(
            image_id=key,
            data=data,
            mime_type=metadata.get('mime_type', 'image/jpeg'),
            caption=metadata.get('caption'),
            phash=metadata.get('phash'),
            width=metadata.get('width'),
            height=metadata.get('height'),
            page_id=metadata.get('page_id')
        )

    def get(self, key: str) -> Optional[bytes]:
        figure = self.repository.get_by_id(key)
        return figure.data if figure else None
