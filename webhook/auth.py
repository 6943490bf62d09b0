"""Authentication of inbound FareHarbor webhook requests."""
import hashlib
import hmac
import logging
from typing import Mapping, Optional

from processor.exceptions import AuthError

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ('x-signature-256', 'x-hub-signature-256')


def constant_time_equals(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode('utf-8'), b.encode('utf-8'))


def verify_token(headers: Mapping[str, str], token: Optional[str]) -> bool:
    """
    Check the shared token.

    Accepts "Authorization: Bearer <token>" or "X-Webhook-Token: <token>".
    Passes when no token is configured.

    Args:
        headers: Request headers with lower-cased names
        token: Configured WEBHOOK_TOKEN

    Returns:
        True if the request carries the token (or none is required)
    """
    if not token:
        return True

    auth = headers.get('authorization') or ''
    if auth.lower().startswith('bearer '):
        return constant_time_equals(auth[len('bearer '):].strip(), token)

    header_token = headers.get('x-webhook-token')
    if header_token:
        return constant_time_equals(header_token.strip(), token)

    return False


def verify_signature(headers: Mapping[str, str], body: bytes, secret: Optional[str]) -> bool:
    """
    Check an HMAC-SHA256 signature over the raw body.

    The signature header may carry a "sha256=" prefix. Passes when no
    secret is configured.
    """
    if not secret:
        return True

    header = next((headers[name] for name in SIGNATURE_HEADERS if headers.get(name)), None)
    if not header:
        return False

    provided = header.strip()
    if provided.startswith('sha256='):
        provided = provided[len('sha256='):]

    expected = hmac.new(secret.encode('utf-8'), body, hashlib.sha256).hexdigest()
    return constant_time_equals(expected, provided.strip().lower())


def authenticate(
    headers: Mapping[str, str],
    body: bytes,
    token: Optional[str] = None,
    secret: Optional[str] = None
) -> None:
    """
    Require every configured check to pass.

    Raises:
        AuthError: If a configured check fails, or nothing is configured
    """
    if not token and not secret:
        raise AuthError("Webhook authentication is not configured")
    if not verify_token(headers, token):
        raise AuthError("Invalid or missing webhook token")
    if not verify_signature(headers, body, secret):
        raise AuthError("Invalid or missing webhook signature")
