"""
Database models for captured notes and figures.

Stores documents, per-page markdown, and the cropped figure images referenced
from the markdown by [FIG_CAPTURE: <image_id> | ...] tags.
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Text, DateTime, ForeignKey, LargeBinary
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def generate_uuid():
    """Generate UUID string for primary keys."""
    return str(uuid.uuid4())


class Document(Base):
    """A note capture session: one or more page images."""

    __tablename__ = 'documents'

    id = Column(String, primary_key=True, default=generate_uuid)
    filename = Column(String, nullable=False)
    total_pages = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    pages = relationship(
        "Page",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="Page.page_number"
    )

    def __repr__(self):
        return f"<Document(id={self.id}, filename={self.filename}, pages={self.total_pages})>"


class Page(Base):
    """Rewritten markdown for one page image."""

    __tablename__ = 'pages'

    id = Column(String, primary_key=True, default=generate_uuid)
    document_id = Column(String, ForeignKey('documents.id'), nullable=False)
    page_number = Column(Integer, nullable=False)
    markdown_content = Column(Text, nullable=False)
    image_width = Column(Integer)
    image_height = Column(Integer)
    error = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    document = relationship("Document", back_populates="pages")
    figures = relationship("FigureImage", back_populates="page")

    def __repr__(self):
        return f"<Page(id={self.id}, doc_id={self.document_id}, page_num={self.page_number})>"


class FigureImage(Base):
    """Cropped figure bytes keyed by the image id used in the markdown."""

    __tablename__ = 'figure_images'

    image_id = Column(String, primary_key=True)
    page_id = Column(String, ForeignKey('pages.id'))
    data = Column(LargeBinary, nullable=False)
    mime_type = Column(String, default="image/jpeg")
    caption = Column(Text)
    phash = Column(String(64))
    width = Column(Integer)
    height = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    page = relationship("Page", back_populates="figures")

    def __repr__(self):
        return f"<FigureImage(image_id={self.image_id}, caption={self.caption!r}, bytes={len(self.data or b'')})>"

    def to_dict(self):
        """Convert to dictionary (without the image bytes)."""
        return {
            'image_id': self.image_id,
            'page_id': self.page_id,
            'mime_type': self.mime_type,
            'caption': self.caption,
            'phash': self.phash,
            'width': self.width,
            'height': self.height,
            'size_bytes': len(self.data or b''),
        }
