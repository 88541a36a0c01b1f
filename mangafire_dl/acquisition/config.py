"""Downloader configuration with JSON persistence."""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional, Union


logger = logging.getLogger(__name__)

CONFIG_PATH = Path("data") / "mangafire.json"
CONFIG_ENV_VAR = "MANGAFIRE_DL_CONFIG"

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


@dataclass
class DownloaderConfig:
    """Settings shared by the fetcher, adapters and downloaders."""
    base_url: str = "https://mangafire.to"
    user_agent: str = DEFAULT_USER_AGENT
    referer: str = "https://mangafire.to/"
    timeout: float = 30.0
    page_delay: float = 0.5
    chapter_delay: float = 1.0
    concurrency: int = 5
    output_dir: str = "downloads"

    @property
    def headers(self) -> dict:
        """Fixed identity sent with every request."""
        return {"User-Agent": self.user_agent, "Referer": self.referer}

    def update(self, key: str, value: str) -> None:
        """Set a field from its string form, coercing to the field's type.

        Raises:
            KeyError: If ``key`` is not a config field.
            ValueError: If ``value`` cannot be converted.
        """
        types = {f.name: f.type for f in fields(self)}
        if key not in types:
            raise KeyError(f"Unknown config key: {key}")

        field_type = types[key]
        if field_type in (int, "int"):
            setattr(self, key, int(value))
        elif field_type in (float, "float"):
            setattr(self, key, float(value))
        else:
            setattr(self, key, value)


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Return the config file to use: explicit path, then env var, then default."""
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return CONFIG_PATH


def load_config(path: Optional[Union[str, Path]] = None) -> DownloaderConfig:
    """Load config from disk.

    Missing files yield the defaults. Unknown keys are ignored.

    Args:
        path: Optional config file path

    Returns:
        Loaded configuration
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        return DownloaderConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to load config {config_path}: {e}")
        return DownloaderConfig()

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config {config_path}: expected a JSON object")
        return DownloaderConfig()

    known = {f.name for f in fields(DownloaderConfig)}
    return DownloaderConfig(**{k: v for k, v in data.items() if k in known})


def save_config(config: DownloaderConfig, path: Optional[Union[str, Path]] = None) -> Path:
    """Save config to disk.

    Args:
        config: Configuration to persist
        path: Optional config file path

    Returns:
        The path written
    """
    config_path = resolve_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(asdict(config), f, indent=2, ensure_ascii=False)
    except OSError as e:
        logger.error(f"Failed to save config {config_path}: {e}")
        raise

    return config_path
