import json
import os
from datetime import datetime, timezone
from typing import Any

DEFAULT_API_URL = "https://api.opsctrl.dev"
DEFAULT_HTTP_TIMEOUT = 30.0


class NotLoggedInError(Exception):
    """No stored credentials."""


def get_api_url() -> str:
    return (os.getenv("OPSCTRL_API_URL") or DEFAULT_API_URL).rstrip("/")


def get_http_timeout() -> float:
    raw = os.getenv("OPSCTRL_HTTP_TIMEOUT")
    if not raw:
        return DEFAULT_HTTP_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_HTTP_TIMEOUT


def get_config_dir() -> str:
    return os.getenv("OPSCTRL_CONFIG_DIR") or os.path.join(
        os.path.expanduser("~"), ".opsctrl"
    )


def credentials_path() -> str:
    return os.path.join(get_config_dir(), "credentials.json")


# ----------------------------
# Credentials
# ----------------------------


def load_credentials() -> dict[str, Any]:
    path = credentials_path()
    if not os.path.exists(path):
        raise NotLoggedInError("You are not logged in. Run `opsctrl login` to authenticate.")

    with open(path, encoding="utf-8") as f:
        creds = json.load(f)

    if not isinstance(creds, dict) or not creds.get("access_token") or not creds.get("org_id"):
        raise ValueError("Invalid credentials file. Please re-run `opsctrl login`.")
    return creds


def save_credentials(creds: dict[str, Any]) -> str:
    path = credentials_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(creds, f, indent=2)
    return path


def delete_credentials() -> bool:
    path = credentials_path()
    if not os.path.exists(path):
        return False
    os.remove(path)
    return True


def load_active_credentials() -> dict[str, Any]:
    """
    Like load_credentials, but an expired token counts as logged out.
    """
    creds = load_credentials()
    if is_token_expired(creds.get("expires_at")):
        raise NotLoggedInError("Your session has expired. Run `opsctrl login` again.")
    return creds


def is_token_expired(expires_at: Any, now: datetime | None = None) -> bool:
    if not expires_at:
        return False
    if not isinstance(expires_at, str):
        raise ValueError(f"Invalid expires_at in credentials file: {expires_at!r}")
    expiry = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return (now or datetime.now(timezone.utc)) > expiry
