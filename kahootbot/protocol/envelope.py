"""
Request envelopes for the fixed channel sequence.

Only the messages needed to join, play and leave one game are built here;
this is not a general Bayeux message factory.
"""

from __future__ import annotations
from typing import Any, Union

from .codec import encode

CONNECTION_TYPE = "long-polling"

CHANNEL_HANDSHAKE = "/meta/handshake"
CHANNEL_CONNECT = "/meta/connect"
CHANNEL_DISCONNECT = "/meta/disconnect"
CHANNEL_SUBSCRIBE = "/meta/subscribe"
CHANNEL_UNSUBSCRIBE = "/meta/unsubscribe"

SERVICE_CONTROLLER = "/service/controller"
SERVICE_PLAYER = "/service/player"
SERVICE_STATUS = "/service/status"

# Subscribed in this order during bootstrap
BOOTSTRAP_SUBSCRIPTIONS = (SERVICE_STATUS, SERVICE_PLAYER, SERVICE_CONTROLLER)

ANSWER_MESSAGE_ID = 6


def cometd_url(root: str, game_pin: int, decoded_token: str, suffix: str = "") -> str:
    """
    {root}/{pin}/{token}[/{suffix}] where suffix is one of
    handshake, connect, disconnect or empty.
    """
    url = f"{root.rstrip('/')}/{game_pin}/{decoded_token}"
    if suffix:
        url += f"/{suffix}"
    return url


def handshake_message(timeout_ms: int = 60000, interval_ms: int = 0) -> dict[str, Any]:
    # advice and supportedConnectionTypes travel as JSON strings, not nested values
    return {
        "advice": encode({"timeout": timeout_ms, "interval": interval_ms}),
        "version": "1.0",
        "minimumVersion": "1.0",
        "channel": CHANNEL_HANDSHAKE,
        "supportedConnectionTypes": encode([CONNECTION_TYPE]),
    }


def subscription_message(client_id: str, channel: str, subscribe: bool = True) -> dict[str, Any]:
    return {
        "channel": CHANNEL_SUBSCRIBE if subscribe else CHANNEL_UNSUBSCRIBE,
        "clientId": client_id,
        "subscription": channel,
    }


def connect_message(client_id: str) -> dict[str, Any]:
    return {
        "channel": CHANNEL_CONNECT,
        "clientId": client_id,
        "connectionType": CONNECTION_TYPE,
    }


def disconnect_message(client_id: str) -> dict[str, Any]:
    return {
        "channel": CHANNEL_DISCONNECT,
        "clientId": client_id,
    }


def login_message(client_id: str, game_pin: int, username: str, host: str) -> dict[str, Any]:
    return {
        "channel": SERVICE_CONTROLLER,
        "clientId": client_id,
        "data": {
            "type": "login",
            "gameid": game_pin,
            "host": host,
            "name": username,
        },
    }


def answer_content(
    choice: Union[int, str],
    user_agent: str,
    screen_width: int = 1337,
    screen_height: int = 1337,
    lag_ms: int = 22,
) -> dict[str, Any]:
    """Inner content of an answer: the choice plus device metadata."""
    return {
        "choice": choice,
        "meta": {
            "lag": lag_ms,
            "device": {
                "userAgent": user_agent,
                "screen": {"width": screen_width, "height": screen_height},
            },
        },
    }


def answer_message(
    client_id: str,
    game_pin: int,
    host: str,
    content: dict[str, Any],
) -> dict[str, Any]:
    """
    Outer answer envelope.

    The inner content is serialized to a string before being placed in
    data.content; the server expects it that way.
    """
    return {
        "clientId": client_id,
        "channel": SERVICE_CONTROLLER,
        "data": {
            "id": ANSWER_MESSAGE_ID,
            "type": "message",
            "gameid": game_pin,
            "host": host,
            "content": encode(content),
        },
    }
