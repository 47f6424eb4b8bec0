"""
Secure Logging Utilities.

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log raw provider credentials
2. Alchemy embeds the API key as the last path segment of the
   endpoint URL, so every URL goes through mask_url before logging
3. Query-string credentials are masked as well

============================================================
"""

import re


# Query parameters whose values are credentials
SENSITIVE_PARAMS = ("apikey", "api_key", "key", "token", "access_token", "secret")

# /v2/<key>, /v3/<key> style credential path segments
_VERSIONED_KEY_SEGMENT = re.compile(r"(/v\d+/)([^/?#]+)")

_SENSITIVE_QUERY = re.compile(
    r"([?&](?:%s)=)([^&#]+)" % "|".join(SENSITIVE_PARAMS),
    re.IGNORECASE,
)


def mask_url(url: str) -> str:
    """
    Mask credentials in an endpoint URL.

    https://eth-mainnet.g.alchemy.com/v2/abc123 -> https://eth-mainnet.g.alchemy.com/v2/***
    """
    if not url:
        return url
    url = _VERSIONED_KEY_SEGMENT.sub(r"\1***", url)
    return _SENSITIVE_QUERY.sub(r"\1***", url)
