import os
from typing import Dict, Optional, Tuple

from .logging import get_logger

log = get_logger("config")

DEFAULT_INITIALS_SCAN_LIMIT = 50_000
DEFAULT_EXCHANGE_RATE_URL = "https://api.exchangerate-api.com/v4/latest/XAF"
DEFAULT_EXCHANGE_RATE_TTL = 3600


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    Running the CLI from a subdirectory (e.g. `src/`) still finds the
    repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _parse_line(raw: str) -> Optional[Tuple[str, str]]:
    """Parse one ``KEY=value`` line; comments, blanks and junk yield None."""
    line = raw.strip()
    if not line or line[0] in "#;" or "=" not in line:
        return None
    if line.startswith("export "):
        line = line[len("export "):]
    key, value = (part.strip() for part in line.split("=", 1))
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1].strip()
    return (key, value) if key else None


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Key/value pairs from the nearest ``.env``; the environment is untouched."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            env = dict(pair for pair in map(_parse_line, f) if pair is not None)
    except OSError as e:
        log.warning(f"Failed reading .env at {path}: {e}")
        return {}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(name: str, dotenv_dir: str) -> Optional[str]:
    v = os.environ.get(name)
    if v:
        return v.strip()
    v = _read_dotenv(dotenv_dir).get(name)
    return v.strip() if v else None


def _positive_int(raw: Optional[str], default: int, name: str) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning(f"Ignoring non-integer {name}={raw!r}; using {default}")
        return default
    if value <= 0:
        log.warning(f"Ignoring non-positive {name}={raw!r}; using {default}")
        return default
    return value


def load_db_path(dotenv_dir: str) -> Optional[str]:
    """Return an explicit SQLite path from PRICE_LOOKUP_DB, if configured."""
    v = _lookup("PRICE_LOOKUP_DB", dotenv_dir)
    if v:
        log.info(f"Using PRICE_LOOKUP_DB={v}")
    return v


def load_initials_scan_limit(dotenv_dir: str) -> int:
    """Upper bound on rows materialized by an initials search."""
    return _positive_int(
        _lookup("INITIALS_SCAN_LIMIT", dotenv_dir),
        DEFAULT_INITIALS_SCAN_LIMIT,
        "INITIALS_SCAN_LIMIT",
    )


def load_exchange_rates(dotenv_dir: str) -> Tuple[str, int]:
    """Return (exchange_rate_url, ttl_seconds) with sensible defaults."""
    url = _lookup("EXCHANGE_RATE_URL", dotenv_dir) or DEFAULT_EXCHANGE_RATE_URL
    ttl = _positive_int(
        _lookup("EXCHANGE_RATE_TTL_SECONDS", dotenv_dir),
        DEFAULT_EXCHANGE_RATE_TTL,
        "EXCHANGE_RATE_TTL_SECONDS",
    )
    return url, ttl
