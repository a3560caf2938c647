"""
Wire codec.

Every response is a JSON array of message objects. Pushed game data sits in
the first message under data.content as a JSON document serialized into a
string, with backslashes inserted before structural characters. Decoding
content is always: strip every backslash, then parse.
"""

from __future__ import annotations
from typing import Any
import json

from .errors import PayloadError, ProtocolError


def encode(message: dict[str, Any]) -> str:
    """Serialize a message object compactly."""
    return json.dumps(message, separators=(",", ":"))


def parse_messages(raw_body: str) -> list[dict[str, Any]]:
    """
    Parse a response body into its list of messages.

    Raises ProtocolError if the body is not a non-empty JSON array of objects.
    """
    try:
        parsed = json.loads(raw_body)
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Response is not JSON: {raw_body!r}") from exc

    if not isinstance(parsed, list):
        raise ProtocolError(f"Response is not a JSON array: {raw_body!r}")
    if not parsed:
        raise ProtocolError("Response array is empty")
    if not all(isinstance(item, dict) for item in parsed):
        raise ProtocolError(f"Response array holds non-object items: {raw_body!r}")
    return parsed


def unescape_content(content: str) -> str:
    return content.replace("\\", "")


def decode_content(content: str) -> dict[str, Any]:
    """Decode a data.content string into its JSON object."""
    try:
        decoded = json.loads(unescape_content(content))
    except (TypeError, ValueError) as exc:
        raise PayloadError(f"Undecodable content: {content!r}") from exc
    if not isinstance(decoded, dict):
        raise PayloadError(f"Content is not a JSON object: {content!r}")
    return decoded


def first_content(raw_body: str) -> dict[str, Any]:
    """Decode data.content of the first message in a response body."""
    try:
        messages = parse_messages(raw_body)
    except ProtocolError as exc:
        raise PayloadError(str(exc)) from exc

    data = messages[0].get("data")
    if not isinstance(data, dict):
        raise PayloadError("First message carries no data object")
    content = data.get("content")
    if not isinstance(content, str):
        raise PayloadError("First message carries no content string")
    return decode_content(content)


def successful(message: dict[str, Any]) -> bool:
    """The `successful` flag of a message; absent counts as failure."""
    return message.get("successful") is True
