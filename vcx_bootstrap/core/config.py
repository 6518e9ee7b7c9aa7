from pathlib import Path
from pydantic import BaseModel
import os
from dotenv import load_dotenv
from vcx_bootstrap import __version__

"""Central configuration.

Values come from the process environment. For local development a
`config.env` file next to the working directory is loaded first so agency
URLs and library locations stay out of shell history; the file never
overrides variables that are already exported.

Env vars:
  VCX_BOOTSTRAP_CONFIG_FILE      - explicit path to a dotenv file
  VCX_BOOTSTRAP_LOG_LEVEL        - python-side logging level
  VCX_NATIVE_LOG_LEVEL           - pattern handed to the native logger
  VCX_AGENCY_ENDPOINT            - base URL of the agency
  VCX_LIBRARY_DIR                - overrides the platform library directory
  VCX_USE_POSTGRES_STORAGE       - initialize the postgres storage plugin
  VCX_READINESS_INTERVAL         - backoff between readiness probes (seconds)
  VCX_READINESS_REQUEST_TIMEOUT  - per-request timeout of a probe (seconds)
  DOCKER                         - remap loopback agency hosts for containers
"""

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _env_float(name: str, default: float, diagnostics: list[str]) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        diagnostics.append(f"invalid_{name.lower()}={raw!r} using_default={default}")
        return default


def load_env_file() -> Path | None:
    candidates = []
    cfg_override = os.getenv('VCX_BOOTSTRAP_CONFIG_FILE')
    if cfg_override:
        candidates.append(Path(cfg_override))
    candidates.append(Path.cwd() / 'config.env')
    for p in candidates:
        if p.is_file():
            load_dotenv(str(p), override=False)
            return p
    return None


class Settings(BaseModel):
    app_name: str = 'vcx-bootstrap'
    version: str = __version__
    # Python logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = 'INFO'
    # Pattern for vcx_set_default_logger: error|warn|info|debug|trace or "vcx=debug"
    native_log_level: str = 'info'
    agency_endpoint: str = 'http://localhost:8080'
    library_dir: str | None = None
    use_postgres_storage: bool = False
    readiness_interval: float = 1.0
    readiness_request_timeout: float = 5.0
    docker_mode: bool = False
    diagnostics: list[str] = []


def load_settings() -> Settings:
    """Build a Settings instance from the current environment."""
    diagnostics: list[str] = []
    env_file = load_env_file()
    if env_file is not None:
        diagnostics.append(f"env_file={env_file}")

    docker_mode = _env_flag("DOCKER")
    if docker_mode:
        diagnostics.append("docker_mode=true")

    library_dir = os.getenv('VCX_LIBRARY_DIR') or None
    if library_dir:
        diagnostics.append(f"library_dir_override={library_dir}")

    return Settings(
        log_level=os.getenv('VCX_BOOTSTRAP_LOG_LEVEL', 'INFO'),
        native_log_level=os.getenv('VCX_NATIVE_LOG_LEVEL', 'info'),
        agency_endpoint=os.getenv('VCX_AGENCY_ENDPOINT', 'http://localhost:8080'),
        library_dir=library_dir,
        use_postgres_storage=_env_flag('VCX_USE_POSTGRES_STORAGE'),
        readiness_interval=_env_float('VCX_READINESS_INTERVAL', 1.0, diagnostics),
        readiness_request_timeout=_env_float('VCX_READINESS_REQUEST_TIMEOUT', 5.0, diagnostics),
        docker_mode=docker_mode,
        diagnostics=diagnostics,
    )


settings = load_settings()
