"""
Outbound JSON POST.

    response, status = push_json_to_remote("https://hooks.example.com/x", {"event": "saved"})

Any status the remote answers with is returned as-is; only a request that
could not be completed at all (DNS, refused connection, timeout set on the
client) is an error. Retries and timeouts belong to the client passed in.
"""

import logging
from typing import Any, Optional, Tuple

import httpx
from pydantic_core import PydanticSerializationError, to_json

from .errors import NetworkError, SerializationError


logger = logging.getLogger(__name__)


def push_json_to_remote(
    uri: str,
    data: Any,
    client: Optional[httpx.Client] = None,
) -> Tuple[httpx.Response, int]:
    """
    POST `data` as JSON to `uri`.

    Args:
        uri: Target URL.
        data: Anything pydantic can serialize.
        client: httpx.Client to send with. A default client is created,
                and closed again, when none is given. Tests pass one built
                on httpx.MockTransport.

    Returns:
        (response, status_code)

    Raises:
        SerializationError: `data` cannot be encoded as JSON.
        NetworkError: the request failed before a response arrived.
    """
    try:
        payload = to_json(data)
    except (PydanticSerializationError, TypeError, ValueError) as e:
        raise SerializationError(f"unable to serialize payload as JSON: {e}") from e

    owns_client = client is None
    if owns_client:
        client = httpx.Client()

    try:
        response = client.post(uri, content=payload, headers={"Content-Type": "application/json"})
    except httpx.HTTPError as e:
        logger.debug("POST %s failed: %s", uri, e)
        raise NetworkError(f"request to {uri} failed: {e}") from e
    finally:
        if owns_client:
            client.close()

    logger.debug("POST %s → %d", uri, response.status_code)
    return response, response.status_code
