"""
Pytest fixtures for kahootbot tests.
"""

from collections import deque
import json

import pytest

from ..config import ClientConfig, RetryPolicy
from ..protocol.bayeux import BayeuxSession
from ..protocol.resolver import StaticTokenResolver
from ..protocol.transport import TransportResponse
from ..session import GamePlayer, PlayMode

GAME_PIN = 123456
TOKEN = "decodedtoken"
CLIENT_ID = "client-abc"
COOKIE_HEADER = "BAYEUX_BROWSER=4f2a-cookie; Path=/; Secure; HttpOnly"
OK_BODY = '[{"successful":true}]'


def push(content, channel="/service/player"):
    """
    A connect response carrying `content` the way the server sends it:
    serialized into data.content with backslashes before the quotes, followed
    by the connect acknowledgement.
    """
    escaped = json.dumps(content, separators=(",", ":")).replace('"', '\\"')
    return json.dumps([
        {"channel": channel, "data": {"content": escaped}},
        {"channel": "/meta/connect", "successful": True},
    ])


def question(index, answers=4):
    return push({
        "questionIndex": index,
        "answerMap": {str(slot): 100 + slot for slot in range(answers)},
    })


def result(is_correct=True, points=500, total=1500, rank=2, nemesis=None):
    return push({
        "isCorrect": is_correct,
        "points": points,
        "totalScore": total,
        "rank": rank,
        "nemesis": nemesis,
    })


def game_over(quiz_id="quiz-42", players=12):
    return push({"quizId": quiz_id, "playerCount": players})


KICK_BODY = json.dumps([
    {"channel": "/service/player", "data": {"type": "kick", "id": 10}},
    {"channel": "/meta/connect", "successful": True},
])


class FakeTransport:
    """
    Scripted transport.

    Handshake returns a clientId and a session cookie. Poll connects (those
    after the login connect) consume `connect_script`, in which an exception
    instance is raised instead of returned. Channels in `rejected` answer
    successful=false. Every request is recorded.
    """

    def __init__(self, connect_script=()):
        self.requests = []
        self.connect_script = deque(connect_script)
        self.rejected = set()
        self.handshake_body = json.dumps([
            {"channel": "/meta/handshake", "clientId": CLIENT_ID, "successful": True},
        ])
        self.handshake_headers = [("Set-Cookie", COOKIE_HEADER)]
        self.handshake_error = None
        self.answer_error = None
        self._logged_in = False
        self._login_connect_pending = False
        self.closed = False

    def post(self, url, headers, body):
        message = json.loads(body)
        self.requests.append({"url": url, "headers": dict(headers), "message": message})
        channel = message.get("channel")

        if channel == "/meta/handshake":
            if self.handshake_error:
                raise self.handshake_error
            return TransportResponse(200, self.handshake_body, list(self.handshake_headers))

        if channel == "/meta/connect" and self._logged_in and not self._login_connect_pending:
            if not self.connect_script:
                raise AssertionError("connect script exhausted")
            item = self.connect_script.popleft()
            if isinstance(item, Exception):
                raise item
            return TransportResponse(200, item)

        if channel == "/meta/connect" and self._login_connect_pending:
            self._login_connect_pending = False

        data = message.get("data") or {}
        if channel == "/service/controller" and data.get("type") == "login":
            self._logged_in = True
            self._login_connect_pending = True
        if channel == "/service/controller" and data.get("type") == "message" and self.answer_error:
            raise self.answer_error

        key = message.get("subscription", channel)
        if key in self.rejected or channel in self.rejected:
            return TransportResponse(200, '[{"successful":false,"error":"403::denied"}]')
        return TransportResponse(200, OK_BODY)

    def close(self):
        self.closed = True

    # ------------------------------------------------------------ Inspection
    def channels(self):
        return [r["message"].get("channel") for r in self.requests]

    def messages_on(self, channel):
        return [r["message"] for r in self.requests if r["message"].get("channel") == channel]

    def poll_connects(self):
        """Connect requests answered from the script."""
        connects = self.messages_on("/meta/connect")
        return max(0, len(connects) - 2)


@pytest.fixture
def config():
    """Config with no pauses and a small retry bound."""
    return ClientConfig(
        base_url="https://quiz.test",
        host="quiz.test",
        user_agent="kahootbot-tests",
        poll_interval=0.0,
        retry=RetryPolicy(max_consecutive_failures=3, backoff_seconds=0.0),
    )


@pytest.fixture
def resolver():
    return StaticTokenResolver(GAME_PIN, TOKEN)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def bayeux(transport, resolver, config):
    return BayeuxSession(GAME_PIN, resolver, transport=transport, config=config)


@pytest.fixture
def make_player(resolver, config):
    """Build a player on a transport; bootstrapped and logged in unless told otherwise."""
    def _make(transport, mode=PlayMode.AUTO_ANSWER, join=True, player_config=None):
        cfg = player_config or config
        session = BayeuxSession(GAME_PIN, resolver, transport=transport, config=cfg)
        player = GamePlayer("tester", session, mode=mode, config=cfg)
        if join:
            player.bootstrap()
            player.login()
        return player
    return _make
