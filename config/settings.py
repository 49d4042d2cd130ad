"""
Configuration management using Pydantic Settings.

Environment variables (case-insensitive, also read from .env):
- VLLM_API_KEY: API key for the OpenAI-compatible OCR server
- VLLM_SERVER_URL: Base URL for the OCR server
- VLLM_MODEL: Vision model name
- DATABASE_URL: SQLAlchemy database URL
- DATABASE_ECHO: log every SQL statement
- OCR_MAX_TOKENS / OCR_TEMPERATURE / OCR_MAX_RETRIES: OCR call parameters
- FIGURE_*: figure capture thresholds (see get_figure_config)
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # OCR server (OpenAI-compatible)
    vllm_api_key: str = Field(default="123")
    vllm_server_url: str = Field(default="http://localhost:8000/v1")
    vllm_model: str = Field(default="ocr")

    # Database Configuration
    database_url: str = Field(default="sqlite:///notes_store.db")
    database_echo: bool = Field(default=False)

    # OCR Parameters
    ocr_max_tokens: int = Field(default=8192)
    ocr_temperature: float = Field(default=0.0)
    ocr_max_retries: int = Field(default=3, ge=1)
    ocr_persona: str = Field(default="")

    # Figure capture: margins (pixels)
    figure_margin_ratio: float = Field(default=0.10, ge=0.0)
    figure_min_margin_px: float = Field(default=24, ge=0)
    figure_max_margin_px: float = Field(default=120, ge=0)

    # Figure capture: clustering (normalized 0-1000 units)
    figure_cluster_iou: float = Field(default=0.05, ge=0.0, le=1.0)
    figure_cluster_gap: float = Field(default=50.0, ge=0.0)

    # Figure capture: size floors (pixels)
    figure_min_dim_px: float = Field(default=48, ge=0)
    figure_min_area_px2: float = Field(default=48 * 48, ge=0)

    # Figure capture: deduplication
    figure_nms_iou: float = Field(default=0.85, ge=0.0, le=1.0)
    figure_nms_center_dist: float = Field(default=30.0, ge=0.0)
    figure_hash_grid: int = Field(default=16, ge=2)
    figure_jpeg_quality: int = Field(default=90, ge=1, le=100)

    def get_figure_config(self) -> dict:
        """Get figure pipeline thresholds as dictionary."""
        return {
            'margin_ratio': self.figure_margin_ratio,
            'min_margin_px': self.figure_min_margin_px,
            'max_margin_px': self.figure_max_margin_px,
            'cluster_iou': self.figure_cluster_iou,
            'cluster_gap': self.figure_cluster_gap,
            'min_dim_px': self.figure_min_dim_px,
            'min_area_px2': self.figure_min_area_px2,
            'nms_iou': self.figure_nms_iou,
            'nms_center_dist': self.figure_nms_center_dist,
            'hash_grid': self.figure_hash_grid,
            'jpeg_quality': self.figure_jpeg_quality,
        }

    def get_ocr_config(self) -> dict:
        """Get OCR call parameters as dictionary."""
        return {
            'max_tokens': self.ocr_max_tokens,
            'temperature': self.ocr_temperature,
            'max_retries': self.ocr_max_retries,
        }


# Global settings instance
settings = Settings()
