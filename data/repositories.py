"""
Repository pattern for data access.

Provides clean separation between data access and business logic.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from data.db_models import Document, Page, FigureImage


class DocumentRepository:
    """Repository for Document operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, filename: str, total_pages: int) -> Document:
        """Create a new document."""
        document = Document(filename=filename, total_pages=total_pages)
        self.session.add(document)
        self.session.commit()
        self.session.refresh(document)
        return document

    def get_by_id(self, document_id: str) -> Optional[Document]:
        """Get document by ID."""
        return self.session.query(Document).filter(
            Document.id == document_id
        ).first()

    def list_all(self, limit: int = 50, offset: int = 0) -> List[Document]:
        """List documents with pagination."""
        return self.session.query(Document)\
            .order_by(Document.created_at.desc())\
            .limit(limit)\
            .offset(offset)\
            .all()

    def delete(self, document_id: str) -> bool:
        """Delete a document and its pages."""
        document = self.get_by_id(document_id)
        if document:
            self.session.delete(document)
            self.session.commit()
            return True
        return False


class PageRepository:
    """Repository for Page operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        document_id: str,
        page_number: int,
        markdown_content: str,
        image_width: Optional[int] = None,
        image_height: Optional[int] = None,
        error: Optional[str] = None
    ) -> Page:
        """Create a new page."""
        page = Page(
            document_id=document_id,
            page_number=page_number,
            markdown_content=markdown_content,
            image_width=image_width,
            image_height=image_height,
            error=error
        )
        self.session.add(page)
        self.session.commit()
        self.session.refresh(page)
        return page

    def get_by_document(self, document_id: str) -> List[Page]:
        """Get all pages for a document, in page order."""
        return self.session.query(Page)\
            .filter(Page.document_id == document_id)\
            .order_by(Page.page_number)\
            .all()


class FigureImageRepository:
    """Repository for FigureImage operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        image_id: str,
        data: bytes,
        mime_type: str = "image/jpeg",
        caption: Optional[str] = None,
        phash: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        page_id: Optional[str] = None
    ) -> FigureImage:
        """Store a figure image."""
        figure = FigureImage(
            image_id=image_id,
            data=data,
            mime_type=mime_type,
            caption=caption,
            phash=phash,
            width=width,
            height=height,
            page_id=page_id
        )
        self.session.add(figure)
        self.session.commit()
        return figure

    def get_by_id(self, image_id: str) -> Optional[FigureImage]:
        """Get figure by image id."""
        return self.session.get(FigureImage, image_id)

    def get_many(self, image_ids: List[str]) -> List[FigureImage]:
        """Get figures by image id, skipping unknown ids."""
        if not image_ids:
            return []
        return self.session.query(FigureImage)\
            .filter(FigureImage.image_id.in_(image_ids))\
            .all()

    def assign_page(self, image_ids: List[str], page_id: str) -> int:
        """Link stored figures to the page that references them."""
        figures = self.get_many(image_ids)
        for figure in figures:
            figure.page_id = page_id
        self.session.commit()
        return len(figures)
