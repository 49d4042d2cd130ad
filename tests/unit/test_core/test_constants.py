"""
Unit tests for core.constants module.
"""
import re

from core.constants import (
    CAPTION_FALLBACK_TEMPLATE,
    CROP_TAG_PATTERN,
    DEFAULT_FIGURE_PARAMS,
    DEFAULT_OCR_PARAMS,
    FIG_CAPTURE_PATTERN,
    FIG_CAPTURE_TEMPLATE,
    OCR_PROMPTS,
    PAGE_ERROR_TEMPLATE,
)


class TestPatterns:
    """Tests for tag patterns and templates."""

    def test_crop_pattern_groups(self):
        match = re.search(CROP_TAG_PATTERN, "x [CROP:1,2,3,4|Cap] y")

        assert match.groups() == ('1', '2', '3', '4', 'Cap')

    def test_fig_capture_template_matches_pattern(self):
        rendered = FIG_CAPTURE_TEMPLATE.format(image_id="img_1_abc", caption="Cell cycle")

        match = re.search(FIG_CAPTURE_PATTERN, rendered)

        assert match.group(1) == "img_1_abc"
        assert match.group(2) == "Cell cycle"

    def test_fallback_template(self):
        assert "Heart" in CAPTION_FALLBACK_TEMPLATE.format(caption="Heart")

    def test_error_template(self):
        assert "timeout" in PAGE_ERROR_TEMPLATE.format(message="timeout")


class TestDefaults:
    """Tests for default parameters."""

    def test_figure_params(self):
        assert DEFAULT_FIGURE_PARAMS['margin_ratio'] == 0.10
        assert DEFAULT_FIGURE_PARAMS['min_margin_px'] == 24
        assert DEFAULT_FIGURE_PARAMS['max_margin_px'] == 120
        assert DEFAULT_FIGURE_PARAMS['cluster_iou'] == 0.05
        assert DEFAULT_FIGURE_PARAMS['cluster_gap'] == 50
        assert DEFAULT_FIGURE_PARAMS['min_dim_px'] == 48
        assert DEFAULT_FIGURE_PARAMS['min_area_px2'] == 48 * 48
        assert DEFAULT_FIGURE_PARAMS['nms_iou'] == 0.85
        assert DEFAULT_FIGURE_PARAMS['nms_center_dist'] == 30
        assert DEFAULT_FIGURE_PARAMS['hash_grid'] == 16

    def test_ocr_params(self):
        assert DEFAULT_OCR_PARAMS['max_retries'] >= 1
        assert DEFAULT_OCR_PARAMS['temperature'] == 0.0

    def test_prompt_describes_crop_tag(self):
        assert "[CROP:ymin,xmin,ymax,xmax|Description]" in OCR_PROMPTS['study_notes']
