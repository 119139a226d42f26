"""
Indicator classification and token normalization.

Compressed IPv6 notation (anything using "::") is not recognised as an IP:
only the full 8-group form is. "2001:db8::1" therefore classifies as a
hostname. Callers that need compressed IPv6 should expand it first.
"""

import re

from ..errors import ValidationError

KIND_IP = "ip"
KIND_HOSTNAME = "hostname"
KIND_FQDN = "fqdn"

MAX_TOKEN_LENGTH = 253

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
IPV4_RE = re.compile(rf"^(?:{_OCTET}\.){{3}}{_OCTET}(?:/(?:[0-9]|[12][0-9]|3[0-2]))?$")
IPV6_RE = re.compile(r"^(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$")
_TOKEN_CHARS_RE = re.compile(r"^[a-z0-9.:/_-]+$")


def classify(token: str) -> str:
    """Return the kind of an indicator token: ip, fqdn or hostname"""
    if IPV4_RE.match(token):
        return KIND_IP
    if IPV6_RE.match(token.split("/", 1)[0]):
        return KIND_IP
    if "." in token and len(token.split(".")) >= 2:
        return KIND_FQDN
    return KIND_HOSTNAME


def normalize_token(raw) -> str:
    """
    Trim and lower-case a submitted token.

    Raises ValidationError for empty, oversized or malformed tokens.
    """
    if raw is None:
        raise ValidationError("token is required")
    token = str(raw).strip().lower()
    if not token:
        raise ValidationError("token is required")
    if len(token) > MAX_TOKEN_LENGTH:
        raise ValidationError(f"token longer than {MAX_TOKEN_LENGTH} characters")
    if not _TOKEN_CHARS_RE.match(token):
        raise ValidationError(f"token contains invalid characters: {token!r}")
    return token
