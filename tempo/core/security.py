import re
from typing import Optional

from tempo.core.errors import CredentialError

PLACEHOLDER_PATTERNS = (
    re.compile(r"^sk-ant-[a-z0-9]+-x{8,}$", re.IGNORECASE),
    re.compile(r"^x+$", re.IGNORECASE),
    re.compile(r"^<.*>$"),
    re.compile(r"^\$\{?[A-Z_]+\}?$"),
    re.compile(r"^(your[-_ ]?(api[-_ ]?)?key.*|changeme|change-me|placeholder|dummy|todo|none|null)$", re.IGNORECASE),
)


def is_placeholder_credential(credential: str) -> bool:
    return any(pattern.match(credential) for pattern in PLACEHOLDER_PATTERNS)


def validate_credential(credential: Optional[str]) -> str:
    key = (credential or "").strip()
    if not key:
        raise CredentialError("Claude API key not configured. Please set ANTHROPIC_API_KEY environment variable.")
    if is_placeholder_credential(key):
        raise CredentialError("Claude API key is a placeholder value. Please set a real ANTHROPIC_API_KEY.")
    return key


def mask_api_key(api_key: str) -> str:
    if len(api_key) <= 8:
        return "*" * len(api_key)
    return f"{api_key[:4]}...{api_key[-4:]}"
