import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


# Ensure backend/.env is loaded even if the app entrypoint doesn't load it.
_env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=_env_path, override=True)

DEFAULT_PIHOLE_HOST = "pi.hole"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_BIND_HOST = "0.0.0.0"
DEFAULT_BIND_PORT = 5000

# Both are fixed by the probing protocol, not configurable.
HTTP_TIMEOUT_S = 10.0
USER_AGENT = "NetScene/1.0"

ARP_TIMEOUT_S = 6.0


def env_path() -> Path:
    return _env_path


def reload_env() -> None:
    # Reload backend/.env at call time so changes take effect without restart.
    load_dotenv(dotenv_path=_env_path, override=True)


def get_pihole_host() -> str:
    reload_env()
    return (os.getenv("PIHOLE_HOST") or "").strip() or DEFAULT_PIHOLE_HOST


def get_pihole_password() -> Optional[str]:
    reload_env()
    pw = (os.getenv("PIHOLE_PASSWORD") or "").strip()
    return pw or None


def get_log_level() -> str:
    return (os.getenv("NETSCENE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()


def get_bind_host() -> str:
    return (os.getenv("NETSCENE_HOST") or DEFAULT_BIND_HOST).strip()


def get_bind_port() -> int:
    raw = (os.getenv("NETSCENE_PORT") or "").strip()
    if not raw:
        return DEFAULT_BIND_PORT
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"NETSCENE_PORT must be an integer, got {raw!r}")


def get_cors_origins() -> List[str]:
    raw = os.getenv("NETSCENE_CORS_ORIGINS") or "*"
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]
