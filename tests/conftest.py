"""
Pytest configuration and global fixtures.
"""
import sys
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from data.db_models import Base


@pytest.fixture
def test_db_engine():
    """Create in-memory SQLite engine for each test (repositories commit)."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def test_db_session(test_db_engine):
    """Create fresh database session for each test."""
    Session = sessionmaker(bind=test_db_engine)
    session = Session()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def temp_dir(tmp_path):
    """Provide temporary directory for test files."""
    return tmp_path


def encode_png(img: Image.Image) -> bytes:
    """Encode a PIL image as PNG bytes."""
    buf = BytesIO()
    img.save(buf, format='PNG')
    return buf.getvalue()


def draw_logo(draw: ImageDraw.ImageDraw, x: int, y: int, size: int):
    """Draw a small asymmetric test pattern with its top-left corner at (x, y)."""
    draw.rectangle([x, y, x + size // 2 - 1, y + size - 1], fill=(0, 0, 0))
    draw.rectangle([x + size // 2, y, x + size - 1, y + size // 4 - 1], fill=(200, 30, 30))


@pytest.fixture
def blank_page_bytes():
    """White 800x800 page as PNG bytes."""
    return encode_png(Image.new('RGB', (800, 800), color='white'))


@pytest.fixture
def repeated_logo_page_bytes():
    """
    White 1000x1000 page with the same pattern drawn at two corners.

    The patterns fill normalized boxes [100,100,300,300] and [700,700,900,900].
    """
    img = Image.new('RGB', (1000, 1000), color='white')
    draw = ImageDraw.Draw(img)
    draw_logo(draw, 100, 100, 200)
    draw_logo(draw, 700, 700, 200)
    return encode_png(img)


@pytest.fixture
def half_split_image():
    """16x16 image: left half black, right half white."""
    img = Image.new('RGB', (16, 16), color='white')
    ImageDraw.Draw(img).rectangle([0, 0, 7, 15], fill=(0, 0, 0))
    return img
