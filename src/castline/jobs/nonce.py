"""Time-bucketed nonces authorizing worker wake-up requests."""

from collections.abc import Callable
import hashlib
import hmac
import time

DEFAULT_LIFETIME_SECONDS = 24 * 60 * 60


class NonceSigner:
    """Create and verify nonces derived from a shared secret.

    A nonce is an HMAC of the current half-lifetime tick, so it stays valid
    for between half and the full lifetime.

    Attributes:
        _secret: Shared secret bytes.
        _lifetime: Nonce lifetime in seconds.
        _clock: Source of the current time.
    """

    def __init__(
        self,
        secret: str,
        lifetime: int = DEFAULT_LIFETIME_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = secret.encode("utf-8")
        self._lifetime = lifetime
        self._clock = clock

    def _tick(self) -> int:
        return int(self._clock() // (self._lifetime / 2))

    def _sign(self, tick: int) -> str:
        return hmac.new(self._secret, str(tick).encode(), hashlib.sha256).hexdigest()[:20]

    def create(self) -> str:
        return self._sign(self._tick())

    def verify(self, nonce: str | None) -> bool:
        """Accept nonces from the current or the previous tick."""
        if not nonce:
            return False
        tick = self._tick()
        return any(
            hmac.compare_digest(nonce.encode(), self._sign(candidate).encode())
            for candidate in (tick, tick - 1)
        )
