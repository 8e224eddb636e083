"""JSON frame encoding for Kuzzle requests and responses."""

import json
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .errors import ProtocolError, SdkError
from .models.request import KuzzleRequest
from .models.response import KuzzleResponse
from .utils.logger import get_logger


logger = get_logger("protocol")

# Request fields that live at the top level of a frame
RESERVED_KEYS = frozenset({
    "requestId", "controller", "action", "index", "collection",
    "_id", "body", "volatile", "jwt",
})


def request_to_dict(request: KuzzleRequest) -> Dict[str, Any]:
    """
    Convert a request to its wire representation.

    Query strings are flattened at the top level of the frame, next to the
    reserved fields. A query string named like a reserved field is rejected.

    Args:
        request: Request to convert

    Returns:
        JSON-serializable dictionary

    Raises:
        SdkError: If a query string collides with a reserved field
    """
    clashes = RESERVED_KEYS.intersection(request.query_strings)
    if clashes:
        raise SdkError("serialize_request", f"Query strings use reserved keys: {sorted(clashes)}")

    frame: Dict[str, Any] = {
        "requestId": request.request_id,
        "controller": request.controller,
        "action": request.action,
    }
    if request.index is not None:
        frame["index"] = request.index
    if request.collection is not None:
        frame["collection"] = request.collection
    if request.id is not None:
        frame["_id"] = request.id
    if request.body:
        frame["body"] = request.body
    if request.volatile:
        frame["volatile"] = request.volatile
    if request.jwt:
        frame["jwt"] = request.jwt
    frame.update(request.query_strings)
    return frame


def serialize_request(request: KuzzleRequest) -> bytes:
    """
    Serialize a request to a UTF-8 JSON frame.

    Raises:
        SdkError: If the request has no id or cannot be encoded
    """
    if request.request_id is None:
        raise SdkError("serialize_request", f"Cannot serialize {request.route}: no request id assigned")

    try:
        json_str = json.dumps(request_to_dict(request), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SdkError("serialize_request", f"Request {request.request_id} is not JSON serializable: {e}") from e

    logger.debug(f"Serialized request {request.request_id} ({request.route}): {len(json_str)} chars")
    return json_str.encode('utf-8')


def decode_frame(data: Union[bytes, str]) -> Dict[str, Any]:
    """
    Decode a raw frame into a JSON object.

    Raises:
        ProtocolError: If the frame is not a UTF-8 JSON object
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode('utf-8')
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Frame is not valid UTF-8: {e}") from e

    logger.debug(f"JSON content: {data[:200]}..." if len(data) > 200 else f"JSON content: {data}")

    try:
        json_dict = json.loads(data)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid JSON: {e}") from e

    if not isinstance(json_dict, dict):
        raise ProtocolError(f"Expected a JSON object, got {type(json_dict).__name__}")
    return json_dict


def deserialize_response(data: Union[bytes, str]) -> KuzzleResponse:
    """
    Deserialize an incoming frame into a response.

    Args:
        data: Raw frame received from the transport

    Returns:
        Deserialized KuzzleResponse

    Raises:
        ProtocolError: If the frame is malformed or carries no request id
    """
    json_dict = decode_frame(data)

    request_id = json_dict.get("requestId")
    if not isinstance(request_id, str) or not request_id:
        raise ProtocolError("Response frame has no requestId")

    try:
        return KuzzleResponse.model_validate(json_dict)
    except ValidationError as e:
        raise ProtocolError(f"Invalid response structure for {request_id}: {e}") from e


def peek_request_id(data: Union[bytes, str]) -> Optional[str]:
    """Return the requestId of a raw frame, or None if it cannot be read."""
    try:
        request_id = decode_frame(data).get("requestId")
    except ProtocolError:
        return None
    return request_id if isinstance(request_id, str) else None
