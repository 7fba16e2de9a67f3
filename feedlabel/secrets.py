from __future__ import annotations

import os
from typing import Optional, Tuple


def _env(name: str) -> Optional[str]:
    v = os.getenv(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


def get_openai_api_key() -> Optional[str]:
    return _env("OPENAI_API_KEY")


def get_confluence_credentials() -> Tuple[Optional[str], Optional[str]]:
    """(email, api_token) for Confluence Cloud basic auth."""
    return _env("CONFLUENCE_EMAIL"), _env("CONFLUENCE_API_TOKEN")
