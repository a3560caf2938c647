"""
Bayeux Session - Protocol identity and the fixed request sequence.

BOOTSTRAP (in order):
1. Handshake           -> clientId + session cookie (fatal on failure)
2. Unsubscribe         /service/controller (clears a stale subscription)
3. Connect             first long-poll handshake
4. Subscribe           /service/status, /service/player, /service/controller

Stages 2-4 are attempted regardless of earlier rejections: a rejected or
failed stage is logged with the raw body and the sequence goes on.

SUCCESS FLAG:
- First element of the response array: handshake, (un)subscribe,
  bootstrap connect, disconnect
- Last element: login, poll connect, answer submission
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Union
import logging

from ..config import ClientConfig
from . import envelope
from .codec import encode, parse_messages, successful
from .errors import ProtocolError, ServerRejected, TransportError
from .resolver import ResolvedGame, SessionTokenResolver
from .transport import RequestsTransport, Transport, TransportResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameIdentity:
    """Everything the server uses to recognise this client. Fixed after handshake."""
    game_pin: int
    decoded_token: str
    client_id: str
    session_cookie: str


@dataclass
class ConnectResponse:
    """Raw and parsed body of one /meta/connect round trip."""
    raw_body: str
    messages: list[dict[str, Any]] = field(default_factory=list)

    @property
    def successful(self) -> bool:
        return bool(self.messages) and successful(self.messages[-1])


def extract_session_cookie(response: TransportResponse) -> str | None:
    """Session cookie from Set-Cookie, without its attributes. The last header wins."""
    values = response.header_values("Set-Cookie")
    if not values:
        return None
    cookie = values[-1].split(";", 1)[0].strip()
    return cookie or None


class BayeuxSession:
    """
    Client side of the quiz's Bayeux/CometD channel.

    Usage:
        session = BayeuxSession(game_pin, resolver)
        session.initialize()
        session.login("nickname")
        while playing:
            response = session.connect()
            ...
        session.disconnect()
    """

    def __init__(
        self,
        game_pin: int,
        resolver: SessionTokenResolver,
        transport: Transport | None = None,
        config: ClientConfig | None = None,
    ):
        self.game_pin = game_pin
        self.resolver = resolver
        self.config = config or ClientConfig()
        self.transport = transport or RequestsTransport(
            timeout=self.config.request_timeout,
            retries=self.config.transport_retries,
            user_agent=self.config.user_agent,
        )
        self.resolved: ResolvedGame | None = None
        self.identity: GameIdentity | None = None

    # ------------------------------------------------------------------ HTTP
    def _url(self, suffix: str = "") -> str:
        if self.resolved is None:
            raise ProtocolError("Session token not resolved; call resolve() first")
        return envelope.cometd_url(
            self.config.cometd_root,
            self.game_pin,
            self.resolved.decoded_token,
            suffix,
        )

    def _require_identity(self) -> GameIdentity:
        if self.identity is None:
            raise ProtocolError("No clientId/session cookie; handshake has not completed")
        return self.identity

    def _post(self, stage: str, message: dict[str, Any], suffix: str = "") -> TransportResponse:
        identity = self._require_identity()
        body = encode(message)
        logger.debug("%s -> %s", stage, body)
        response = self.transport.post(
            self._url(suffix),
            {"Cookie": identity.session_cookie},
            body,
        )
        logger.debug("%s <- %s", stage, response.body)
        return response

    def _check(self, stage: str, raw_body: str, use_last: bool = False) -> bool:
        """
        Read the success flag of a response.

        Rejections are logged and reported as False, never raised.
        Raises ProtocolError if the body is not a message array.
        """
        messages = parse_messages(raw_body)
        message = messages[-1] if use_last else messages[0]
        if successful(message):
            return True
        rejection = ServerRejected(stage, raw_body)
        logger.warning("%s. Full server response: %s", rejection, raw_body)
        return False

    def _lenient_stage(self, stage: str, message: dict[str, Any], suffix: str = "") -> bool:
        """Run a bootstrap stage; any failure is logged and reported as False."""
        try:
            response = self._post(stage, message, suffix)
            return self._check(stage, response.body)
        except (TransportError, ProtocolError) as exc:
            logger.warning("[%s] stage failed: %s", stage, exc)
            return False

    # ------------------------------------------------------------- Bootstrap
    def resolve(self) -> ResolvedGame:
        """Resolve the game PIN into a decoded session token (once)."""
        if self.resolved is None:
            self.resolved = self.resolver.resolve(self.game_pin)
            logger.debug(
                "Resolved game %s (team=%s, 2fa=%s)",
                self.game_pin,
                self.resolved.is_team_game,
                self.resolved.is_2fa_game,
            )
        return self.resolved

    def handshake(self) -> GameIdentity:
        """
        Open the Bayeux session.

        Raises ProtocolError if the handshake fails in any way: no usable
        session exists without a clientId and cookie.
        """
        resolved = self.resolve()
        message = envelope.handshake_message(
            self.config.advice_timeout_ms, self.config.advice_interval_ms
        )
        body = encode(message)
        logger.debug("HANDSHAKE -> %s", body)
        try:
            response = self.transport.post(self._url("handshake"), {}, body)
        except TransportError as exc:
            raise ProtocolError(f"Handshake request failed: {exc}") from exc
        logger.debug("HANDSHAKE <- %s", response.body)

        messages = parse_messages(response.body)
        client_id = messages[0].get("clientId")
        if not isinstance(client_id, str) or not client_id:
            raise ProtocolError(f"Handshake response has no clientId: {response.body}")

        cookie = extract_session_cookie(response)
        if cookie is None:
            raise ProtocolError("Handshake response carries no session cookie")

        self.identity = GameIdentity(
            game_pin=self.game_pin,
            decoded_token=resolved.decoded_token,
            client_id=client_id,
            session_cookie=cookie,
        )
        logger.info("Handshake complete for game %s (clientId=%s)", self.game_pin, client_id)
        return self.identity

    def subscribe(self, channel: str) -> bool:
        identity = self._require_identity()
        return self._lenient_stage(
            f"SUBSCRIBE {channel}",
            envelope.subscription_message(identity.client_id, channel),
        )

    def unsubscribe(self, channel: str) -> bool:
        identity = self._require_identity()
        return self._lenient_stage(
            f"UNSUBSCRIBE {channel}",
            envelope.subscription_message(identity.client_id, channel, subscribe=False),
        )

    def initialize(self) -> GameIdentity:
        """
        Run the full bootstrap. Only the handshake is fatal.

        Returns the identity established by the handshake.
        """
        identity = self.handshake()
        self.unsubscribe(envelope.SERVICE_CONTROLLER)
        self._lenient_stage(
            "BOOTSTRAP CONNECT",
            envelope.connect_message(identity.client_id),
            "connect",
        )
        for channel in envelope.BOOTSTRAP_SUBSCRIPTIONS:
            self.subscribe(channel)
        return identity

    # ----------------------------------------------------------------- Game
    def login(self, username: str) -> bool:
        """
        Join the game under `username`, then complete the long-poll handshake.

        Returns whether the server accepted the login. Deciding what a
        rejected login means for the session is left to the caller.
        """
        identity = self._require_identity()
        accepted = False
        try:
            response = self._post(
                "LOGIN",
                envelope.login_message(
                    identity.client_id, self.game_pin, username, self.config.host
                ),
            )
            accepted = self._check("LOGIN", response.body, use_last=True)
        except (TransportError, ProtocolError) as exc:
            logger.warning("[LOGIN] request failed: %s", exc)

        try:
            response = self._post(
                "LOGIN CONNECT",
                envelope.connect_message(identity.client_id),
                "connect",
            )
            self._check("LOGIN CONNECT", response.body, use_last=True)
        except (TransportError, ProtocolError) as exc:
            logger.warning("[LOGIN CONNECT] request failed: %s", exc)

        return accepted

    def connect(self) -> ConnectResponse:
        """
        One long-poll round trip. Blocks until the server has something to
        say or the advised timeout elapses.

        Raises TransportError on I/O failure, ProtocolError on a body that
        is not a message array.
        """
        identity = self._require_identity()
        response = self._post(
            "CONNECT",
            envelope.connect_message(identity.client_id),
            "connect",
        )
        messages = parse_messages(response.body)
        result = ConnectResponse(raw_body=response.body, messages=messages)
        if not result.successful:
            logger.warning(
                "%s. Full server response: %s",
                ServerRejected("CONNECT", response.body),
                response.body,
            )
        return result

    def submit_answer(self, choice: Union[int, str]) -> bool:
        """
        Send an answer (the server's answer identifier, not the slot).

        Returns the server's success flag; transport failures are logged and
        reported as False.
        """
        identity = self._require_identity()
        content = envelope.answer_content(
            choice,
            user_agent=self.config.user_agent,
            screen_width=self.config.screen_width,
            screen_height=self.config.screen_height,
            lag_ms=self.config.lag_ms,
        )
        message = envelope.answer_message(
            identity.client_id, self.game_pin, self.config.host, content
        )
        try:
            response = self._post("ANSWER", message)
            return self._check("ANSWER", response.body, use_last=True)
        except (TransportError, ProtocolError) as exc:
            logger.warning("[ANSWER] request failed: %s", exc)
            return False

    def disconnect(self) -> bool:
        """Leave the game. Never raises for server or network trouble."""
        if self.identity is None:
            logger.debug("Disconnect skipped: no handshake was completed")
            return False
        return self._lenient_stage(
            "DISCONNECT",
            envelope.disconnect_message(self.identity.client_id),
            "disconnect",
        )

    def close(self):
        """Release the transport's connections. The session is not usable afterwards."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()
