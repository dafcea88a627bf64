# inventory_client/config.py
# Environment-aware configuration for the inventory API client

import os
from typing import Literal

# Environment detection - normalize to lowercase
_raw_env = os.environ.get("ENV", "dev").lower()
ENV: Literal["dev", "staging", "prod"] = _raw_env if _raw_env in ("dev", "staging", "prod") else "dev"  # type: ignore

IS_DEV = (ENV == "dev")
IS_STAGING = (ENV == "staging")
IS_PROD = (ENV == "prod")

DEFAULT_API_BASE_URL = "http://localhost:4000/api"

# Client-side request timeout (seconds)
REQUEST_TIMEOUT = int(os.environ.get("API_TIMEOUT", "10"))


def validate_api_url(url: str, env: str) -> None:
    """
    Validate an API base URL for the environment.

    Raises:
        ValueError: Empty URL, or a non-HTTPS/localhost URL outside dev
    """
    if not url:
        raise ValueError("API base URL cannot be empty")

    if env in ("staging", "prod"):
        if not url.startswith("https://"):
            raise ValueError(f"Production/staging must use HTTPS. Got: {url}")
        if "127.0.0.1" in url or "localhost" in url:
            raise ValueError(f"Production/staging cannot use localhost URLs. Got: {url}")


def get_api_base_url() -> str:
    """
    API_BASE_URL from the environment (trailing slash removed), falling
    back to the local backend in dev.

    Raises:
        RuntimeError: staging/prod with no API_BASE_URL configured
        ValueError: configured URL fails validate_api_url
    """
    url = os.environ.get("API_BASE_URL", "").strip().rstrip("/")
    if url:
        validate_api_url(url, ENV)
        return url

    if IS_DEV:
        return DEFAULT_API_BASE_URL

    raise RuntimeError(
        f"API_BASE_URL is not configured for {ENV.upper()}. "
        "Production/staging must set it and cannot fall back to localhost."
    )
