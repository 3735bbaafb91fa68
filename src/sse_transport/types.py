"""JSON-RPC 2.0 message types.

Inbound writes are validated into one of four shapes:

- request: ``jsonrpc`` + ``method`` + ``id``
- notification: ``jsonrpc`` + ``method`` (no ``id``)
- response: ``jsonrpc`` + ``id`` + ``result``
- error response: ``jsonrpc`` + ``id`` + ``error``

Unknown members are preserved (``extra="allow"``) so a validated message
dumps back to the value the client sent.
"""

from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, ValidationError

from .errors import InvalidMessageError

JSONRPC_VERSION = "2.0"

# Strict, so `true` is not coerced to the integer id 1
RequestId = Union[StrictStr, StrictInt]


class JsonRpcModel(BaseModel):
    """Base model for JSON-RPC messages."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION


class JsonRpcRequest(JsonRpcModel):
    """JSON-RPC 2.0 request."""

    id: RequestId
    method: str
    params: dict[str, Any] | list[Any] | None = None


class JsonRpcNotification(JsonRpcModel):
    """JSON-RPC 2.0 notification (no response expected)."""

    method: str
    params: dict[str, Any] | list[Any] | None = None


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    model_config = ConfigDict(extra="allow")

    code: int
    message: str
    data: Any | None = None


class JsonRpcResultResponse(JsonRpcModel):
    """JSON-RPC 2.0 successful response."""

    id: RequestId
    result: Any


class JsonRpcErrorResponse(JsonRpcModel):
    """JSON-RPC 2.0 error response.

    ``id`` is null when the request id could not be determined.
    """

    id: RequestId | None
    error: JsonRpcError


JsonRpcMessage = Union[
    JsonRpcRequest,
    JsonRpcNotification,
    JsonRpcResultResponse,
    JsonRpcErrorResponse,
]


class JsonRpcErrorCode:
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


def _message_class(value: dict[str, Any]) -> type[JsonRpcModel] | None:
    if "method" in value:
        return JsonRpcRequest if "id" in value else JsonRpcNotification
    if "result" in value:
        return JsonRpcResultResponse
    if "error" in value:
        return JsonRpcErrorResponse
    return None


def parse_message(value: Any) -> JsonRpcMessage:
    """Validate a decoded JSON value as a JSON-RPC message.

    Raises:
        InvalidMessageError: if the value is not an object, lacks the
            ``jsonrpc: "2.0"`` marker, carries none of method/result/error,
            or a member has the wrong type.
    """
    if not isinstance(value, dict):
        raise InvalidMessageError(
            f"Invalid JSON-RPC message: expected an object, got {type(value).__name__}"
        )

    if value.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidMessageError('Invalid JSON-RPC message: missing "jsonrpc": "2.0"')

    message_class = _message_class(value)
    if message_class is None:
        raise InvalidMessageError(
            "Invalid JSON-RPC message: expected one of method, result or error"
        )

    try:
        return message_class.model_validate(value)  # type: ignore[return-value]
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidMessageError(f"Invalid JSON-RPC message: {details}") from e


def to_payload(message: Any) -> Any:
    """Convert a message to a JSON-compatible value.

    Pydantic models are dumped with only the members that were set, so a
    parsed message dumps back to exactly what the client sent, explicit
    nulls and extra members included. ``jsonrpc`` is always present.
    Anything else is returned unchanged.
    """
    if not isinstance(message, BaseModel):
        return message

    payload = message.model_dump(mode="json", exclude_unset=True, by_alias=True)
    if isinstance(message, JsonRpcModel):
        payload = {"jsonrpc": message.jsonrpc, **payload}
    if isinstance(message, JsonRpcResultResponse):
        payload.setdefault("result", None)
    elif isinstance(message, JsonRpcErrorResponse):
        payload.setdefault("id", None)
    return payload
