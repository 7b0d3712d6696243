from functools import lru_cache
from pathlib import Path

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    # Root directory holding one sub-directory of chain hashes per source file
    cache_dir: Path = Path("cache")
    block_size: int = 1024
    log_level: str = "INFO"
    metrics_enabled: bool = False
    metrics_port: int = 8000
    metrics_addr: str = "0.0.0.0"
    # Backoff for transient cache I/O errors
    retry_attempts: int = 3
    retry_wait_multiplier: float = 0.5
    retry_wait_min: float = 0.1
    retry_wait_max: float = 2.0

    model_config = SettingsConfigDict(env_prefix="HASHPLAYER_", env_file=".env", env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type["Settings"],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment variables take highest priority, then init, dotenv, file secrets
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def get_package_version() -> str:
    """
    Returns the version string from setup.py, falling back to the package version.
    """
    import os
    import re

    from . import __version__

    setup_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), "setup.py")
    version_pattern = re.compile(r'version\s*=\s*[\'"]([^\'"]+)[\'"]')
    try:
        with open(setup_path, "r", encoding="utf-8") as f:
            for line in f:
                match = version_pattern.search(line)
                if match:
                    return match.group(1)
    except OSError:
        pass
    return __version__
