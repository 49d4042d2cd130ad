"""
Unit tests for data.db_models module.
"""
from data.db_models import Document, FigureImage, Page
from data.repositories import DocumentRepository, FigureImageRepository, PageRepository


class TestDocument:
    """Tests for Document model."""

    def test_create_document(self, test_db_session):
        """Test creating a document."""
        doc = Document(filename="lecture.jpg", total_pages=3)
        test_db_session.add(doc)
        test_db_session.commit()

        assert doc.id is not None
        assert doc.created_at is not None

    def test_document_pages_ordered(self, test_db_session):
        """Test pages relationship is ordered by page number."""
        doc = Document(filename="notes.png", total_pages=2)
        test_db_session.add(doc)
        test_db_session.flush()

        test_db_session.add(Page(document_id=doc.id, page_number=2, markdown_content="two"))
        test_db_session.add(Page(document_id=doc.id, page_number=1, markdown_content="one"))
        test_db_session.commit()
        test_db_session.refresh(doc)

        assert [p.page_number for p in doc.pages] == [1, 2]

    def test_delete_cascades_to_pages(self, test_db_session):
        documents = DocumentRepository(test_db_session)
        pages = PageRepository(test_db_session)
        doc = documents.create(filename="notes.png", total_pages=1)
        pages.create(document_id=doc.id, page_number=1, markdown_content="x")

        assert documents.delete(doc.id)
        assert pages.get_by_document(doc.id) == []
        assert not documents.delete(doc.id)


class TestFigureImage:
    """Tests for FigureImage model."""

    def test_to_dict_omits_bytes(self, test_db_session):
        figure = FigureImage(image_id="img_1", data=b"12345", caption="Cell", phash="ab" * 32)
        test_db_session.add(figure)
        test_db_session.commit()

        data = figure.to_dict()

        assert data['image_id'] == "img_1"
        assert data['size_bytes'] == 5
        assert data['mime_type'] == "image/jpeg"
        assert 'data' not in data

    def test_assign_page(self, test_db_session):
        repo = FigureImageRepository(test_db_session)
        doc = DocumentRepository(test_db_session).create(filename="n.png", total_pages=1)
        page = PageRepository(test_db_session).create(
            document_id=doc.id, page_number=1, markdown_content="x"
        )
        repo.create(image_id="img_1", data=b"a")
        repo.create(image_id="img_2", data=b"b")

        linked = repo.assign_page(["img_1", "img_2", "img_missing"], page.id)

        assert linked == 2
        test_db_session.refresh(page)
        assert {f.image_id for f in page.figures} == {"img_1", "img_2"}

    def test_get_many_empty(self, test_db_session):
        assert FigureImageRepository(test_db_session).get_many([]) == []
