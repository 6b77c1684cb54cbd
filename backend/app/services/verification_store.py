from __future__ import annotations

import secrets
import threading
import time
from typing import Callable, Dict, Optional, Tuple


def normalize_email(email: str) -> str:
    """Canonical form used for account lookups and code keys"""
    return email.strip().lower()


class VerificationCodeStore:
    """In-memory map of pending reactivation codes, keyed by email.

    One code per email; a new put overwrites the old one. Entries live only for
    the lifetime of the process. Every access happens under one lock so a
    put racing a discard for the same email never loses the newer code.
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = 900,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # email -> (code, expires_at or None)
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    @staticmethod
    def _key(email: str) -> str:
        return normalize_email(email)

    def _is_expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def put(self, email: str, code: str) -> None:
        expires_at = None
        if self._ttl_seconds:
            expires_at = self._clock() + self._ttl_seconds
        with self._lock:
            self._entries[self._key(email)] = (code, expires_at)

    def get(self, email: str) -> Optional[str]:
        """Return the pending code, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(self._key(email))
            if entry is None or self._is_expired(entry[1]):
                return None
            return entry[0]

    def matches(self, email: str, code: str) -> bool:
        """Check a submitted code without consuming it."""
        stored = self.get(email)
        if stored is None or not isinstance(code, str):
            return False
        return secrets.compare_digest(stored.encode(), code.encode())

    def discard(self, email: str, code: Optional[str] = None) -> bool:
        """Delete the entry for email.

        When code is given, delete only if it is still the stored one.
        """
        key = self._key(email)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if code is not None and entry[0] != code:
                return False
            del self._entries[key]
            return True

    def purge_expired(self) -> int:
        with self._lock:
            stale = [key for key, (_, expires_at) in self._entries.items() if self._is_expired(expires_at)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def generate_code(num_bytes: int) -> str:
    """Random hex verification code; num_bytes of entropy."""
    return secrets.token_hex(num_bytes)
