"""AWS Lambda handler receiving FareHarbor webhooks and requesting a sync run."""
import base64
import logging
import os
from typing import Any, Dict

from lambda_function import setup_logging
from processor.exceptions import AuthError, DispatchError
from webhook.auth import authenticate
from webhook.dispatcher import dispatcher_from_env

WEBHOOK_PATH = '/fareharbor/webhook'
HEALTH_PATH = '/health'
MAX_BODY_BYTES = 1_000_000


def _response(status: int, text: str, headers: Dict[str, str] = None) -> Dict[str, Any]:
    return {
        'statusCode': status,
        'headers': {'Content-Type': 'text/plain', **(headers or {})},
        'body': text
    }


def _request_parts(event: Dict[str, Any]):
    """
    Normalize Function URL / API Gateway v2 and v1 payloads.

    Returns:
        Tuple of (path, method, lower-cased headers, raw body bytes)
    """
    http = (event.get('requestContext') or {}).get('http') or {}
    path = event.get('rawPath') or event.get('path') or '/'
    method = (http.get('method') or event.get('httpMethod') or 'GET').upper()
    headers = {k.lower(): v for k, v in (event.get('headers') or {}).items() if v is not None}

    body = event.get('body') or ''
    if event.get('isBase64Encoded'):
        raw = base64.b64decode(body)
    else:
        raw = body.encode('utf-8')
    return path, method, headers, raw


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Authenticate a webhook POST and ask for a fresh sync.

    Responds 202 as soon as the run is requested; the sync itself runs
    elsewhere.

    Args:
        event: Function URL or API Gateway HTTP event
        context: Lambda context object

    Returns:
        HTTP response dict
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    path, method, headers, body = _request_parts(event)

    if path == HEALTH_PATH:
        return _response(200, 'ok')

    if path != WEBHOOK_PATH:
        return _response(404, 'not found')

    if method != 'POST':
        return _response(405, 'method not allowed', {'Allow': 'POST'})

    try:
        declared_length = int(headers.get('content-length') or 0)
    except ValueError:
        declared_length = 0
    if declared_length > MAX_BODY_BYTES or len(body) > MAX_BODY_BYTES:
        return _response(413, 'payload too large')

    try:
        authenticate(
            headers,
            body,
            token=os.environ.get('WEBHOOK_TOKEN'),
            secret=os.environ.get('WEBHOOK_HMAC_SECRET')
        )
    except AuthError as e:
        logger.warning(f"Rejected webhook request: {e}")
        return _response(401, 'unauthorized')

    try:
        dispatcher_from_env().dispatch()
    except DispatchError as e:
        logger.error(f"Could not request sync run: {e}", exc_info=True)
        return _response(502, 'dispatch failed')

    logger.info("Webhook accepted; sync run requested")
    return _response(202, 'accepted')
