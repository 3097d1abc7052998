"""Configuration management for the PDF toolbox service."""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class OperationsConfig:
    """Configuration for PDF operations."""
    max_file_size_mb: int = field(
        default_factory=lambda: int(os.environ.get("MAX_FILE_SIZE_MB", "100"))
    )
    max_files: int = field(
        default_factory=lambda: int(os.environ.get("MAX_FILES", "50"))
    )
    max_selected_pages: int = field(
        default_factory=lambda: int(os.environ.get("MAX_SELECTED_PAGES", "10000"))
    )
    default_compress_level: int = field(
        default_factory=lambda: int(os.environ.get("DEFAULT_COMPRESS_LEVEL", "3"))
    )
    render_scale: float = field(
        default_factory=lambda: float(os.environ.get("RENDER_SCALE", "1.5"))
    )
    watermark_font_size: float = field(
        default_factory=lambda: float(os.environ.get("WATERMARK_FONT_SIZE", "50"))
    )
    watermark_opacity: float = field(
        default_factory=lambda: float(os.environ.get("WATERMARK_OPACITY", "0.3"))
    )
    page_number_font_size: float = field(
        default_factory=lambda: float(os.environ.get("PAGE_NUMBER_FONT_SIZE", "10"))
    )


@dataclass
class ServerConfig:
    """Configuration for HTTP server."""
    host: str = field(
        default_factory=lambda: os.environ.get("HTTP_HOST", "0.0.0.0")
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("HTTP_PORT", "8089"))
    )


@dataclass
class LoggingConfig:
    """Configuration for log output."""
    level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO").upper()
    )
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Main configuration container."""
    operations: OperationsConfig = field(default_factory=OperationsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Force reload of configuration from environment."""
    global _config
    _config = Config()
    return _config


def configure_logging() -> None:
    """Apply the configured log level and format to the root logger."""
    config = get_config()
    logging.basicConfig(level=config.logging.level, format=config.logging.format)
