"""Settings loaded from environment variables (+ optional .env file).

Priority: real env var > .env override in the working directory > default.
Only TM_* keys are read from .env; malformed lines are skipped.
"""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

ENV_PREFIX = "TM"
DEFAULT_TASKS_FILE = "./tasks.json"

log = logging.getLogger(__name__)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def read_dotenv(path: Path) -> Dict[str, str]:
    """Parse KEY=VALUE lines from ``path``; missing or unreadable file -> empty dict."""
    overrides: Dict[str, str] = {}
    if not path.exists():
        return overrides
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        log.warning("ignoring unreadable %s: %s", path, exc)
        return overrides
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        k, v = line.split('=', 1)
        k = k.strip()
        v = v.strip().strip('"').strip("'")
        if k.startswith(ENV_PREFIX + "_"):
            overrides[k] = v
    return overrides


def env_value(name: str, default: Optional[str] = None,
              environ: Optional[Mapping[str, str]] = None,
              dotenv: Optional[Mapping[str, str]] = None) -> Optional[str]:
    environ = os.environ if environ is None else environ
    dotenv = _DOTENV if dotenv is None else dotenv
    v = environ.get(name)
    if v is not None and v.strip() != "":
        return v
    return dotenv.get(name, default)


def truthy(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_level(raw: Optional[str], default: int = logging.WARNING) -> int:
    if not raw:
        return default
    raw = raw.strip()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


@dataclass(frozen=True)
class Settings:
    tasks_file: Path
    log_level: int = logging.WARNING
    log_file: Optional[Path] = None


def load_settings(environ: Optional[Mapping[str, str]] = None,
                  dotenv: Optional[Mapping[str, str]] = None) -> Settings:
    def get(suffix: str, default: Optional[str] = None) -> Optional[str]:
        return env_value(_k(suffix), default, environ=environ, dotenv=dotenv)

    log_file = get("LOG_FILE")
    return Settings(
        tasks_file=Path(get("FILE", DEFAULT_TASKS_FILE) or DEFAULT_TASKS_FILE).expanduser(),
        log_level=parse_level(get("LOG_LEVEL")),
        log_file=Path(log_file).expanduser() if log_file else None,
    )


_DOTENV: Dict[str, str] = read_dotenv(Path.cwd() / '.env')
