"""
Guest Session Fingerprints
==========================

Guests do not log in. A like is attributed to a fingerprint of the
request: the client's network address plus its User-Agent header.

KNOWN WEAKNESS:
---------------
Two guests behind the same NAT with byte-identical User-Agents produce the
same key and count as one voter. Accepted for a no-login guest site.

Everything else in the app calls get_session_key(), which resolves the
function named by settings.LIKE_SESSION_FINGERPRINT. Replacing the
fingerprint (e.g. with a signed cookie token) only means pointing that
setting at another callable.
"""

import hashlib
from typing import Optional

from django.conf import settings
from django.utils.module_loading import import_string

UNKNOWN = 'unknown'


def derive_session_key(remote_addr: Optional[str], client_id: Optional[str]) -> str:
    """
    Map (address, client identifier) to a stable opaque key.

    Pure and total: missing parts are replaced by a fixed sentinel, so the
    same inputs always give the same 64-character hex digest.
    """
    address = remote_addr or UNKNOWN
    identifier = client_id or UNKNOWN
    raw = f"{address}_{identifier}".encode('utf-8')
    return hashlib.sha256(raw).hexdigest()


def client_address(request) -> Optional[str]:
    """Network origin of the request, honouring the first X-Forwarded-For hop when trusted."""
    if settings.TRUST_X_FORWARDED_FOR:
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
        first_hop = forwarded.split(',')[0].strip()
        if first_hop:
            return first_hop
    return request.META.get('REMOTE_ADDR')


def session_key_from_request(request) -> str:
    return derive_session_key(
        client_address(request),
        request.META.get('HTTP_USER_AGENT')
    )


def get_session_key(request) -> str:
    """Session key for the request using the configured fingerprint function."""
    fingerprint = import_string(settings.LIKE_SESSION_FINGERPRINT)
    return fingerprint(request)
