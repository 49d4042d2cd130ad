"""
Document Storage Service

Persists processed notes: documents, per-page markdown and the links
between pages and the figures they reference.
"""
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from core.models import ServicePageResult
from data.db_models import Document, FigureImage, Page
from data.repositories import DocumentRepository, FigureImageRepository, PageRepository
from utils.text_utils import extract_figure_references


class DocumentStorageService:
    """Service for storing and retrieving captured notes."""

    def __init__(self, session: Session):
        """
        Initialize storage service.

        Args:
            session: SQLAlchemy database session
        """
        self.session = session
        self.documents = DocumentRepository(session)
        self.pages = PageRepository(session)
        self.figures = FigureImageRepository(session)

    def create_document(self, filename: str, total_pages: int) -> Document:
        """Create a new document entry."""
        return self.documents.create(filename=filename, total_pages=total_pages)

    def save_page_result(self, document_id: str, page_result: ServicePageResult) -> Page:
        """
        Save a processed page and link its stored figures to it.

        Args:
            document_id: ID of parent document
            page_result: ServicePageResult from OCR processing

        Returns:
            Created Page object
        """
        page = self.pages.create(
            document_id=document_id,
            page_number=page_result.page_num,
            markdown_content=page_result.markdown,
            image_width=page_result.image_width,
            image_height=page_result.image_height,
            error=page_result.error
        )

        image_ids = [figure.image_id for figure in page_result.figures]
        if image_ids:
            self.figures.assign_page(image_ids, page.id)

        return page

    def get_document(self, document_id: str) -> Optional[Document]:
        """Get document by ID."""
        return self.documents.get_by_id(document_id)

    def list_documents(self, limit: int = 50, offset: int = 0) -> List[Document]:
        """List documents, newest first."""
        return self.documents.list_all(limit=limit, offset=offset)

    def get_document_markdown(self, document_id: str, separator: str = "\n\n---\n\n") -> str:
        """Concatenate the markdown of all pages in page order."""
        pages = self.pages.get_by_document(document_id)
        return separator.join(page.markdown_content.strip() for page in pages)

    def get_document_figures(self, document_id: str) -> Dict[str, FigureImage]:
        """
        Get the figures referenced from a document's markdown.

        Returns:
            Dict mapping image_id to FigureImage, in reference order
        """
        markdown = self.get_document_markdown(document_id)
        image_ids = [image_id for image_id, _ in extract_figure_references(markdown)]
        found = {figure.image_id: figure for figure in self.figures.get_many(image_ids)}
        return {image_id: found[image_id] for image_id in image_ids if image_id in found}
