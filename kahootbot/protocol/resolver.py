"""
Session token resolution.

Looking up a game PIN and decoding the session token happens outside this
package. The session only depends on the SessionTokenResolver protocol.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol

from .errors import ResolutionError


@dataclass(frozen=True)
class ResolvedGame:
    """Decoded token plus game metadata for one PIN."""
    decoded_token: str
    is_team_game: bool = False
    is_2fa_game: bool = False


class SessionTokenResolver(Protocol):
    def resolve(self, game_pin: int) -> ResolvedGame:
        """Resolve a PIN. Raises ResolutionError if it is invalid or unknown."""
        ...


class StaticTokenResolver:
    """
    Resolver for a token obtained elsewhere (browser, companion tool).

    Only the PIN it was created for resolves.
    """

    def __init__(
        self,
        game_pin: int,
        decoded_token: str,
        is_team_game: bool = False,
        is_2fa_game: bool = False,
    ):
        self.game_pin = game_pin
        self.resolved = ResolvedGame(
            decoded_token=decoded_token,
            is_team_game=is_team_game,
            is_2fa_game=is_2fa_game,
        )

    def resolve(self, game_pin: int) -> ResolvedGame:
        if game_pin <= 0:
            raise ResolutionError(f"Invalid game PIN: {game_pin}")
        if game_pin != self.game_pin:
            raise ResolutionError(f"No session token known for game PIN {game_pin}")
        if not self.resolved.decoded_token.strip():
            raise ResolutionError(f"Empty session token for game PIN {game_pin}")
        return self.resolved
