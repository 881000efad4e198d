"""Challenge-response handshake run on every freshly opened connection.

Sequence:
1. Open a websocket connection
2. Receive a challenge (some random data to sign)
3. Sign the data and send it back over the wire
4. Receive an "ok" and start sending and receiving RPC
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable, Callable

from loguru import logger

from swaprpc.utils.exceptions import AuthorizationError, TransportError

AUTH_OK = "ok"
AUTH_REJECTED = "not authorized"

Signer = Callable[[str], Awaitable[str]]
SendText = Callable[[str], Awaitable[None]]


class AuthState(str, Enum):
    """Handshake states."""

    CONNECTING = "connecting"
    AWAITING_CHALLENGE_OUTCOME = "awaiting_challenge_outcome"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


class ChallengeAuthenticator:
    """Drive the pre-authentication phase of one connection.

    ``outcome`` settles exactly once: with ``"ok"`` on success, with
    ``AuthorizationError`` when the server refuses the signature, or with the
    failure raised by the signer or by the socket.
    """

    def __init__(self, signer: Signer, send: SendText, address: str | None = None):
        self._signer = signer
        self._send = send
        self._address = address
        self.state = AuthState.CONNECTING
        self.outcome: asyncio.Future[str] = asyncio.get_running_loop().create_future()

    @property
    def authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED

    @property
    def settled(self) -> bool:
        return self.outcome.done()

    def opened(self) -> None:
        """The transport is open; wait for the server's first message."""
        if self.state is AuthState.CONNECTING:
            self.state = AuthState.AWAITING_CHALLENGE_OUTCOME

    async def handle(self, data: str) -> None:
        """Consume one raw message received before authentication completed."""
        if self.state in (AuthState.AUTHENTICATED, AuthState.REJECTED):
            return
        self.state = AuthState.AWAITING_CHALLENGE_OUTCOME

        if data == AUTH_OK:
            self.state = AuthState.AUTHENTICATED
            logger.info("Authentication successful")
            self._settle(result=data)
        elif data == AUTH_REJECTED:
            self.state = AuthState.REJECTED
            logger.error("Authentication failed: address {} is not authorized", self._address)
            self._settle(error=AuthorizationError(address=self._address))
        else:
            await self._answer_challenge(data)

    def connection_lost(self, reason: str = "connection closed before authentication completed") -> None:
        """Fail a still-pending outcome when the socket goes away mid-handshake."""
        if not self.settled:
            self._settle(error=TransportError(reason))

    async def _answer_challenge(self, challenge: str) -> None:
        try:
            signature = await self._signer(challenge)
        except Exception as e:
            logger.error("Failed to sign challenge: {}", e)
            self.state = AuthState.REJECTED
            self._settle(error=e)
            return
        await self._send(signature)
        logger.debug("Challenge signature sent")

    def _settle(self, *, result: str | None = None, error: BaseException | None = None) -> None:
        if self.outcome.done():
            return
        if error is not None:
            self.outcome.set_exception(error)
        else:
            self.outcome.set_result(result)
