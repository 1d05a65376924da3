"""Application configuration."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

PACKAGE_DIR = Path(__file__).resolve().parent
BUNDLED_MAPPING_DIR = str(PACKAGE_DIR / "data" / "mapping")


@dataclass
class XsltConfig:
    """External XSLT processor configuration."""

    # Placeholders: {input}, {stylesheet}, {output}. Empty means in-process lxml.
    command: str = ""
    timeout: int = 60
    temp_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "XsltConfig":
        """Load config from environment variables."""
        return cls(
            command=os.getenv("DATAMAPPER_XSLT_COMMAND", ""),
            timeout=int(os.getenv("DATAMAPPER_XSLT_TIMEOUT", "60")),
            temp_dir=os.getenv("DATAMAPPER_TEMP_DIR") or None,
        )


@dataclass
class AppConfig:
    """Application configuration."""

    module_mapping_dir: str = BUNDLED_MAPPING_DIR
    user_mapping_dir: str = "./mapping"
    default_querier: str = "jsdot"
    log_level: str = "WARNING"
    http_timeout: int = 30
    xslt: XsltConfig = None

    def __post_init__(self):
        """Initialize default values."""
        if self.xslt is None:
            self.xslt = XsltConfig.from_env()

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load config from environment variables."""
        return cls(
            module_mapping_dir=os.getenv("DATAMAPPER_MODULE_DIR", BUNDLED_MAPPING_DIR),
            user_mapping_dir=os.getenv("DATAMAPPER_USER_DIR", "./mapping"),
            default_querier=os.getenv("DATAMAPPER_DEFAULT_QUERIER", "jsdot"),
            log_level=os.getenv("DATAMAPPER_LOG_LEVEL", "WARNING"),
            http_timeout=int(os.getenv("DATAMAPPER_HTTP_TIMEOUT", "30")),
            xslt=XsltConfig.from_env(),
        )


# Global instance
app_config = AppConfig.from_env()
