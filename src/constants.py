"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    LOOKUP_ERROR = 3


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL_NPM = "https://registry.npmjs.org"
    GITHUB_API_BASE = "https://api.github.com"
    LICENSE_SERVICE_URL = "https://github-license-service.herokuapp.com"
    LICENSE_DETECTOR_URL = "https://oss-license-detector.herokuapp.com/"
    ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
    ENV_CONFIG = "PKGMETA_CONFIG"
    ENV_LOG_LEVEL = "PKGMETA_LOG_LEVEL"
    GITHUB_TOKEN: Optional[str] = None

    METADATA_FILE = "package.json"
    ARCHIVE_EXCLUDES = frozenset({"node_modules"})
    NPM_GROUP_ID = "org.webjars.npm"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    GIT_TIMEOUT = 120
    USER_AGENT = "pkgmeta/0.1"
    ARCHIVE_CHUNK_SIZE = 64 * 1024


_DEFAULT_CONFIG_LOCATIONS = (
    "pkgmeta.yml",
    os.path.join("~", ".config", "pkgmeta", "pkgmeta.yml"),
)


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the YAML config from an explicit path or the default locations.

    Returns an empty dict when nothing is found or the file cannot be parsed.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    candidates = [path] if path else []
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path and not path:
        candidates.append(env_path)
    if not candidates:
        candidates.extend(os.path.expanduser(p) for p in _DEFAULT_CONFIG_LOCATIONS)

    for candidate in candidates:
        if not os.path.isfile(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                cfg = yaml.safe_load(fh) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", candidate, exc)
            return {}
        if not isinstance(cfg, dict):
            logger.warning("Ignoring config %s: top level is not a mapping", candidate)
            return {}
        return cfg
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Overlay recognised config keys onto Constants."""
    def _section(name):
        value = cfg.get(name)
        return value if isinstance(value, dict) else {}

    registry = _section("registry")
    github = _section("github")
    license_cfg = _section("license")
    http = _section("http")

    if registry.get("url"):
        Constants.REGISTRY_URL_NPM = str(registry["url"]).rstrip("/")
    if github.get("api_base"):
        Constants.GITHUB_API_BASE = str(github["api_base"]).rstrip("/")
    if github.get("token"):
        Constants.GITHUB_TOKEN = str(github["token"])
    if license_cfg.get("service_url"):
        Constants.LICENSE_SERVICE_URL = str(license_cfg["service_url"]).rstrip("/")
    if license_cfg.get("detector_url"):
        Constants.LICENSE_DETECTOR_URL = str(license_cfg["detector_url"])
    if http.get("timeout") is not None:
        try:
            Constants.REQUEST_TIMEOUT = int(http["timeout"])
        except (TypeError, ValueError):
            logger.warning("Ignoring non-integer http.timeout: %r", http["timeout"])
