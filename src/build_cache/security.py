"""
URL sanitization for logs and error messages.

Archive locations handed out by the cache service are usually pre-signed
(Azure SAS or similar). The signature grants read access to the archive, so
it must never reach a log file.
"""

import re
from typing import Set
from urllib.parse import urlparse, urlunparse

SENSITIVE_PARAMS: Set[str] = {
    "sig",
    "signature",
    "sv",
    "se",
    "st",
    "sp",
    "sr",
    "spr",  # Azure SAS
    "skoid",
    "sktid",
    "skt",
    "ske",
    "sks",
    "skv",  # Azure user delegation SAS
    "x-amz-signature",
    "x-amz-credential",
    "x-amz-security-token",  # AWS
    "token",
    "access_token",
    "api_key",
    "apikey",
}

# Patterns that may carry credentials inside free-form error text
SENSITIVE_PATTERNS = [
    (re.compile(r'(?<![\w-])sig=[^&\s"\']+', re.IGNORECASE), "sig=[REDACTED]"),
    (re.compile(r'(?<![\w-])se=[^&\s"\']+', re.IGNORECASE), "se=[REDACTED]"),
    (re.compile(r'(?<![\w-])token=[^&\s"\']+', re.IGNORECASE), "token=[REDACTED]"),
    (
        re.compile(r'(?<![\w-])(access_token|api_key|apikey)=[^&\s"\']+', re.IGNORECASE),
        r"\1=[REDACTED]",
    ),
    (
        re.compile(r'(?<![\w-])x-amz-signature=[^&\s"\']+', re.IGNORECASE),
        "x-amz-signature=[REDACTED]",
    ),
]


def sanitize_url(url: str) -> str:
    """
    Remove sensitive query parameters from URL.

    Preserves scheme, host and path for debugging while replacing values
    that could grant access if exposed in logs.

    Args:
        url: URL that may contain sensitive parameters

    Returns:
        URL with sensitive parameters replaced with [REDACTED]

    Example:
        >>> sanitize_url("https://acct.blob.core.windows.net/c/o?sv=2020&sig=abc")
        'https://acct.blob.core.windows.net/c/o?sv=[REDACTED]&sig=[REDACTED]'
    """
    if not url:
        return url

    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    if not parsed.query:
        return url

    sanitized_params = []
    for param in parsed.query.split("&"):
        if "=" in param:
            key, _ = param.split("=", 1)
            if key.lower() in SENSITIVE_PARAMS:
                sanitized_params.append(f"{key}=[REDACTED]")
                continue
        sanitized_params.append(param)

    return urlunparse(parsed._replace(query="&".join(sanitized_params)))


def sanitize_error_message(message: str) -> str:
    """
    Redact credential-looking fragments from an error message.

    Args:
        message: Error text, possibly containing a signed URL

    Returns:
        Message with sensitive values replaced
    """
    if not message:
        return message
    for pattern, replacement in SENSITIVE_PATTERNS:
        message = pattern.sub(replacement, message)
    return message
