import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

import requests

from opsctrl.config import (
    NotLoggedInError,
    delete_credentials,
    get_api_url,
    load_active_credentials,
    save_credentials,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def wait_until(
    fn: Callable[[], T | None],
    timeout: float = 30.0,
    interval: float = 2.0,
    on_poll: Callable[[], None] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """
    Call fn until it returns something other than None.

    Raises TimeoutError once timeout seconds have elapsed.
    """
    start = clock()
    while clock() - start < timeout:
        result = fn()
        if result is not None:
            return result
        if on_poll:
            on_poll()
        sleep(interval)
    raise TimeoutError(f"Timeout after {timeout}s")


def initiate_login(api_url: str | None = None) -> dict[str, str]:
    url = f"{api_url or get_api_url()}/auth/device/initiate"
    response = requests.post(url, timeout=10)
    response.raise_for_status()
    data = response.json()
    return {"login_code": data["login_code"], "url": data["url"]}


def claim_auth_token(login_code: str, api_url: str | None = None) -> dict[str, Any] | None:
    url = f"{api_url or get_api_url()}/auth/device/status"
    response = requests.get(url, params={"login_code": login_code}, timeout=10)
    if response.status_code in (202, 404):
        return None
    response.raise_for_status()
    data = response.json()
    if not isinstance(data, dict) or not data.get("access_token"):
        return None
    return data


def login(
    login_code: str,
    api_url: str | None = None,
    timeout: float = 30.0,
    interval: float = 2.0,
) -> dict[str, Any]:
    creds = wait_until(
        lambda: claim_auth_token(login_code, api_url), timeout=timeout, interval=interval
    )
    path = save_credentials(creds)
    logger.debug("Credentials saved to %s", path)
    return creds


def logout() -> bool:
    return delete_credentials()


def is_logged_in() -> bool:
    try:
        load_active_credentials()
    except (NotLoggedInError, ValueError):
        return False
    return True
