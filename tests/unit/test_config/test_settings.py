"""
Unit tests for config.settings module.
"""
import pytest
from pydantic import ValidationError

from config.settings import Settings
from core.constants import DEFAULT_FIGURE_PARAMS, DEFAULT_OCR_PARAMS


class TestSettings:
    """Tests for Settings."""

    def test_figure_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.get_figure_config() == DEFAULT_FIGURE_PARAMS

    def test_ocr_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.get_ocr_config() == DEFAULT_OCR_PARAMS

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FIGURE_CLUSTER_GAP", "75")
        monkeypatch.setenv("vllm_model", "notes-ocr")

        settings = Settings(_env_file=None)

        assert settings.figure_cluster_gap == 75.0
        assert settings.get_figure_config()['cluster_gap'] == 75.0
        assert settings.vllm_model == "notes-ocr"

    def test_env_file(self, temp_dir):
        env_file = temp_dir / ".env"
        env_file.write_text("DATABASE_URL=sqlite:///other.db\nOCR_MAX_RETRIES=5\n")

        settings = Settings(_env_file=str(env_file))

        assert settings.database_url == "sqlite:///other.db"
        assert settings.ocr_max_retries == 5

    def test_invalid_threshold_rejected(self, monkeypatch):
        monkeypatch.setenv("FIGURE_NMS_IOU", "1.5")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
