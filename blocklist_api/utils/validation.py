import ipaddress
import re

from blocklist_api.blocklist.errors import InvalidAddressError

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

# Hex digits, dots and colons only: rules out zone ids, CIDR suffixes,
# whitespace and anything else ipaddress would otherwise tolerate.
_IP_RE = re.compile(r"[0-9a-fA-F.:]+")
_MAX_ECHO = 64


def _shorten(value) -> str:
    text = str(value)
    if len(text) > _MAX_ECHO:
        text = text[:_MAX_ECHO] + "..."
    return text


def parse_ip(value) -> IPAddress:
    """Parse ``value`` as an IPv4 or IPv6 address.

    Raises InvalidAddressError for anything that is not exactly one address
    in textual form (no surrounding whitespace, no prefix length, no zone).
    """
    if not isinstance(value, str):
        raise InvalidAddressError(_shorten(value), "not a string")
    if not value:
        raise InvalidAddressError(value, "empty")
    if not _IP_RE.fullmatch(value):
        raise InvalidAddressError(_shorten(value))
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        raise InvalidAddressError(_shorten(value)) from None


def canonicalize_ip(value) -> str:
    """Return the canonical spelling used as the blocklist key.

    >>> canonicalize_ip("0:0:0:0:0:0:0:1")
    '::1'
    """
    return str(parse_ip(value))


def is_valid_ip(value) -> bool:
    try:
        parse_ip(value)
    except InvalidAddressError:
        return False
    return True
