"""Configuration for the Ollama filter.

Process settings come from environment variables. The Ollama endpoint and
model come from the shared emergence config file, with built-in defaults.
"""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434/v1/completions"
DEFAULT_OLLAMA_MODEL = "phi3"

ConfigMap = Mapping[str, Mapping[str, str]]


class Settings(BaseSettings):
    """Filter settings, loaded from environment variables."""

    # Server (0 = ask the OS for a free port)
    HOST: str = "127.0.0.1"
    PORT: int = 0

    # Shared config file holding the [ollama] section
    EMERGENCE_CONF_PATH: str = str(Path.home() / ".config" / "emergence" / "emergence.conf")

    # Completion call timeout (unset = wait for the downstream service)
    COMPLETION_TIMEOUT_SECONDS: float | None = None

    # Filter directory (empty = registration disabled, local dev default)
    REGISTRY_URL: str = ""
    REGISTRY_TIMEOUT_SECONDS: float = 10.0
    REGISTRY_RETRY_ATTEMPTS: int = 5
    REGISTRY_RETRY_DELAY: float = 1.0
    REGISTRY_RETRY_BACKOFF: float = 2.0

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()


@dataclass(frozen=True)
class ResolvedConfig:
    url: str
    model: str


def resolve_config(
    config_map: ConfigMap | None,
    default_url: str = DEFAULT_OLLAMA_URL,
    default_model: str = DEFAULT_OLLAMA_MODEL,
) -> ResolvedConfig:
    """Pick the Ollama url and model out of the config map, else the defaults."""
    section = (config_map or {}).get("ollama") or {}
    return ResolvedConfig(
        url=section.get("url", default_url),
        model=section.get("model", default_model),
    )


def read_emergence_conf(path: str | Path | None = None) -> dict[str, dict[str, str]]:
    """Read the emergence config file into a section -> key -> value dict.

    A missing or unreadable file is not an error: an empty dict is returned
    and the defaults apply.
    """
    conf_path = Path(path or settings.EMERGENCE_CONF_PATH).expanduser()
    parser = configparser.ConfigParser(interpolation=None)

    try:
        with conf_path.open(encoding="utf-8") as fh:
            parser.read_file(fh)
    except FileNotFoundError:
        logger.info("No emergence config at %s, using defaults", conf_path)
        return {}
    except (OSError, configparser.Error) as e:
        logger.warning("Could not read emergence config %s: %s", conf_path, e)
        return {}

    return {name: dict(parser.items(name)) for name in parser.sections()}
