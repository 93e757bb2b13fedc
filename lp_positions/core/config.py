import json
import os
from pathlib import Path
from typing import Any

_CONFIG_ENV_KEYS = ("LP_POSITIONS_CONFIG_PATH", "LP_POSITIONS_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"

DEFAULT_DEBOUNCE_MS = 700
DEFAULT_HTTP_TIMEOUT_S = 30.0
DEFAULT_PERMIT_EXPIRATION_S = 30 * 24 * 60 * 60
DEFAULT_PERMIT_SIG_DEADLINE_S = 30 * 60


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        return json.loads(cfg_path.read_text())
    except (OSError, ValueError):
        return {}


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    Modules that imported CONFIG at import time see the update.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def _section(name: str) -> dict[str, Any]:
    value = CONFIG.get(name)
    return value if isinstance(value, dict) else {}


def get_rpc_urls() -> dict[str, Any]:
    return _section("chain").get("rpc_urls", {})


def get_api_base_url() -> str:
    api_url = _section("system").get("api_base_url")
    if api_url:
        return str(api_url).strip()
    return "http://localhost:3000/api"


def get_api_key() -> str | None:
    api_key = _section("system").get("api_key")
    if api_key:
        return str(api_key).strip()
    return os.environ.get("LP_POSITIONS_API_KEY")


def get_http_timeout_s() -> float:
    return float(_section("system").get("http_timeout_s", DEFAULT_HTTP_TIMEOUT_S))


def get_debounce_ms() -> int:
    return int(_section("liquidity").get("debounce_ms", DEFAULT_DEBOUNCE_MS))


def get_permit_expiration_s() -> int:
    return int(
        _section("permit2").get("expiration_s", DEFAULT_PERMIT_EXPIRATION_S)
    )


def get_permit_sig_deadline_s() -> int:
    return int(
        _section("permit2").get("sig_deadline_s", DEFAULT_PERMIT_SIG_DEADLINE_S)
    )


def get_position_manager_address(chain_id: int) -> str:
    managers = _section("chain").get("position_managers", {})
    address = managers.get(str(chain_id)) or managers.get(chain_id)
    if not address:
        raise ValueError(f"No position manager configured for chain ID {chain_id}")
    return str(address)
