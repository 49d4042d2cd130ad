"""
Unit tests for services.figure_pipeline module.
"""
import itertools
import re
from io import BytesIO

import pytest
from PIL import Image, UnidentifiedImageError

from core.exceptions import CropFailure, HashFailure
from core.models import TagOutcome
from data.blob_store import InMemoryBlobStore
from services.figure_pipeline import FigureExtractionPipeline, generate_image_id
from utils.image_utils import crop_figure


@pytest.fixture
def key_factory():
    counter = itertools.count(1)
    return lambda: f"img_{next(counter)}"


@pytest.fixture
def store():
    return InMemoryBlobStore()


@pytest.fixture
def pipeline(store, key_factory):
    return FigureExtractionPipeline(store, key_factory=key_factory)


def assert_referenced_once(result):
    """Every stored figure appears exactly once and no crop tag survives."""
    assert "[CROP" not in result.text.upper()
    for figure in result.figures:
        assert result.text.count(figure.image_id) == 1


class TestGenerateImageId:
    """Tests for generate_image_id function."""

    def test_format(self):
        assert re.match(r'^img_\d+_[0-9a-f]{8}$', generate_image_id())

    def test_unique(self):
        assert len({generate_image_id() for _ in range(50)}) == 50


class TestFigureExtractionPipeline:
    """End-to-end tests for FigureExtractionPipeline.process."""

    def test_overlapping_tags_merge_into_one_figure(self, pipeline, store, blank_page_bytes):
        text = (
            "# Biology\n"
            "[CROP:100,100,400,400|Cell]\n"
            "The cell membrane.\n"
            "[CROP:120,110,410,420|Cell membrane]\n"
        )

        result = pipeline.process(text, blank_page_bytes)

        assert len(result.figures) == 1
        assert len(store) == 1
        figure = result.figures[0]
        assert figure.image_id == "img_1"
        assert figure.caption == "Cell"
        assert "[FIG_CAPTURE: img_1 | Cell]" in result.text
        assert "Cell membrane]" not in result.text
        assert "The cell membrane." in result.text
        assert result.stats['tags'] == 2
        assert result.stats['clusters'] == 1
        assert result.stats['crops'] == 1
        assert_referenced_once(result)

    def test_tiny_tag_is_dropped(self, pipeline, store, blank_page_bytes):
        text = "Bullet [CROP:10,10,20,20|dot] point"

        result = pipeline.process(text, blank_page_bytes)

        assert result.figures == []
        assert len(store) == 0
        assert result.text == "Bullet  point"
        assert result.stats['size_filtered'] == 1
        assert [d.outcome for d in result.decisions] == [TagOutcome.SIZE_FILTERED]

    def test_repeated_logo_stored_once(self, pipeline, store, repeated_logo_page_bytes):
        text = (
            "Header [CROP:100,100,300,300|Logo]\n"
            "Footer [CROP:700,700,900,900|Logo again]\n"
        )

        result = pipeline.process(text, repeated_logo_page_bytes)

        assert result.stats['clusters'] == 2
        assert result.stats['hash_dupes'] == 1
        assert len(result.figures) == 1
        assert len(store) == 1
        assert "[FIG_CAPTURE: img_1 | Logo]" in result.text
        assert "Logo again" not in result.text
        assert_referenced_once(result)

    def test_stored_metadata(self, pipeline, store, repeated_logo_page_bytes):
        result = pipeline.process("[CROP:100,100,300,300|Logo]", repeated_logo_page_bytes)

        figure = result.figures[0]
        assert (figure.width, figure.height) == (248, 248)
        assert len(figure.phash) == 64
        assert store.metadata["img_1"]['caption'] == "Logo"
        assert store.metadata["img_1"]['phash'] == figure.phash
        with Image.open(BytesIO(store.get("img_1"))) as img:
            assert img.format == 'JPEG'

    def test_text_without_tags_is_untouched(self, pipeline, store):
        """Test the image is never opened when there is nothing to crop."""
        text = "# Notes\nNo figures here."

        result = pipeline.process(text, b"not an image")

        assert result.text == text
        assert result.figures == []
        assert result.stats['tags'] == 0

    def test_dimension_read_error_propagates(self, pipeline):
        with pytest.raises(UnidentifiedImageError):
            pipeline.process("[CROP:100,100,400,400|Cell]", b"not an image")

    def test_known_dimensions_skip_image_read(self, pipeline, blank_page_bytes):
        result = pipeline.process("[CROP:100,100,400,400|Cell]", blank_page_bytes, dimensions=(800, 800))

        assert len(result.figures) == 1

    def test_duplicate_verbatim_tags(self, pipeline, blank_page_bytes):
        text = "A [CROP:100,100,400,400|Cell] B [CROP:100,100,400,400|Cell] C"

        result = pipeline.process(text, blank_page_bytes)

        assert len(result.figures) == 1
        assert result.text == "A \n[FIG_CAPTURE: img_1 | Cell]\n B  C"

    def test_nms_keeps_larger_box(self, store, key_factory, blank_page_bytes):
        """Test near-identical boxes that were not clustered are reduced by NMS."""
        pipeline = FigureExtractionPipeline(
            store,
            config={'cluster_iou': 1.01, 'cluster_gap': 0.0},
            key_factory=key_factory
        )
        text = "[CROP:105,105,395,395|Small] [CROP:100,100,400,400|Big]"

        result = pipeline.process(text, blank_page_bytes)

        assert result.stats['clusters'] == 2
        assert result.stats['nms_removed'] == 1
        assert [f.caption for f in result.figures] == ["Big"]
        assert "Small" not in result.text
        assert_referenced_once(result)

    def test_crop_failure_falls_back_to_caption(self, store, key_factory, blank_page_bytes):
        def failing_cropper(*args, **kwargs):
            raise CropFailure("boom")

        pipeline = FigureExtractionPipeline(store, key_factory=key_factory, cropper=failing_cropper)

        result = pipeline.process("See [CROP:100,100,400,400|Heart] here", blank_page_bytes)

        assert result.figures == []
        assert len(store) == 0
        assert result.text == "See \n*[Figure: Heart]*\n here"
        assert result.stats['crop_failures'] == 1

    def test_crop_failure_is_local_to_cluster(self, store, key_factory, repeated_logo_page_bytes):
        calls = []

        def flaky_cropper(source, rect, **kwargs):
            calls.append(rect)
            if len(calls) == 1:
                raise CropFailure("first crop fails")
            return crop_figure(source, rect, **kwargs)

        pipeline = FigureExtractionPipeline(store, key_factory=key_factory, cropper=flaky_cropper)
        text = "[CROP:100,100,300,300|One] [CROP:700,700,900,900|Two]"

        result = pipeline.process(text, repeated_logo_page_bytes)

        assert len(result.figures) == 1
        assert "*[Figure: One]*" in result.text
        assert "[FIG_CAPTURE: img_1 | Two]" in result.text

    def test_hash_failure_keeps_figures(self, store, key_factory, repeated_logo_page_bytes):
        """Test identical crops are both kept when they cannot be hashed."""
        def failing_hasher(*args, **kwargs):
            raise HashFailure("no hash")

        pipeline = FigureExtractionPipeline(store, key_factory=key_factory, hasher=failing_hasher)
        text = "[CROP:100,100,300,300|One] [CROP:700,700,900,900|Two]"

        result = pipeline.process(text, repeated_logo_page_bytes)

        assert len(result.figures) == 2
        assert all(f.phash is None for f in result.figures)
        assert result.stats['hash_dupes'] == 0
        assert_referenced_once(result)

    def test_store_failure_falls_back_to_caption(self, key_factory, blank_page_bytes):
        class BrokenStore(InMemoryBlobStore):
            def put(self, key, data, **metadata):
                raise RuntimeError("disk full")

        pipeline = FigureExtractionPipeline(BrokenStore(), key_factory=key_factory)

        result = pipeline.process("[CROP:100,100,400,400|Heart]", blank_page_bytes)

        assert result.figures == []
        assert "*[Figure: Heart]*" in result.text
        assert result.stats['crop_failures'] == 1

    def test_unexpected_cropper_error_falls_back_to_caption(self, store, key_factory, blank_page_bytes):
        def broken_cropper(*args, **kwargs):
            raise RuntimeError("raster backend failed")

        pipeline = FigureExtractionPipeline(store, key_factory=key_factory, cropper=broken_cropper)

        result = pipeline.process("See [CROP:100,100,400,400|Heart] here", blank_page_bytes)

        assert result.figures == []
        assert len(store) == 0
        assert result.text == "See \n*[Figure: Heart]*\n here"
        assert result.stats['crop_failures'] == 1

    def test_unexpected_hasher_error_keeps_figure(self, store, key_factory, blank_page_bytes):
        def broken_hasher(*args, **kwargs):
            raise RuntimeError("numpy exploded")

        pipeline = FigureExtractionPipeline(store, key_factory=key_factory, hasher=broken_hasher)

        result = pipeline.process("[CROP:100,100,400,400|Heart]", blank_page_bytes)

        assert len(result.figures) == 1
        assert result.figures[0].phash is None
        assert_referenced_once(result)

    def test_caption_containing_tag(self, pipeline, store, blank_page_bytes):
        """Test a crop tag inside a caption does not survive into the output."""
        text = "See [CROP:100,100,400,400|compare [CROP: 1,2,3,4] here"

        result = pipeline.process(text, blank_page_bytes)

        assert len(result.figures) == 1
        assert result.figures[0].caption == "compare"
        assert store.metadata["img_1"]['caption'] == "compare"
        assert result.text == "See \n[FIG_CAPTURE: img_1 | compare]\n here"
        assert_referenced_once(result)

    def test_hashes_do_not_leak_between_runs(self, pipeline, store, repeated_logo_page_bytes):
        text = "[CROP:100,100,300,300|Logo]"

        first = pipeline.process(text, repeated_logo_page_bytes)
        second = pipeline.process(text, repeated_logo_page_bytes)

        assert len(first.figures) == 1
        assert len(second.figures) == 1
        assert len(store) == 2

    def test_every_tag_gets_one_decision(self, pipeline, repeated_logo_page_bytes):
        text = (
            "[CROP:100,100,300,300|Logo] [CROP:110,110,290,290|Logo inner] "
            "[CROP:700,700,900,900|Logo copy] [CROP:500,500,505,505|speck]"
        )

        result = pipeline.process(text, repeated_logo_page_bytes)

        spans = sorted(d.rect.span for d in result.decisions)
        assert len(spans) == 4
        assert len(set(spans)) == 4
        assert_referenced_once(result)
