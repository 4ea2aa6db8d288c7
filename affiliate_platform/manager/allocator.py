"""
Short-code allocation for affiliate links.

Provided pieces:
- RandomCodeStrategy: random code of length L over A-Z, a-z, 0-9 (62 symbols),
  drawn from `secrets` so codes are not guessable from earlier ones.
- CodeAllocator: draws candidates from a strategy, checks each against the
  store, and gives up with `AllocationExhausted` after a fixed budget.

Configuration (via affiliate_platform.config.settings):
- CODE_LENGTH: code length (default 8; clamped 4..32)
- CODE_MAX_ATTEMPTS: candidates tried per allocation (default 10)
- CODE_BACKOFF_MS: optional pause between collisions (default 0)

Notes:
- The existence check does not reserve anything. Uniqueness is finally decided
  by the store's unique constraint at insert time; LinkStore resumes the same
  `candidates()` budget when an insert loses that race.
- With 62^8 possible codes a collision is rare; the budget only guards against
  a broken generator or a saturated keyspace.
"""

import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from affiliate_platform.config import settings
from affiliate_platform.errors import AllocationExhausted

log = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits

CodeGenerator = Callable[[], str]


def _safe_len(length: Optional[int]) -> int:
    """Resolve desired code length from arg or config, clamped to [4, 32]."""
    L = int(length) if length is not None else int(getattr(settings, "CODE_LENGTH", 8))
    return max(4, min(32, L))


@dataclass(frozen=True)
class RandomCodeStrategy:
    """Random fixed-length code over the 62-symbol alphabet."""
    length: int = 8
    alphabet: str = CODE_ALPHABET

    def generate(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))

    __call__ = generate


class CodeAllocator:
    """
    Produce short codes that are absent from the store at check time.

    Args:
        exists: callable returning True when a code is already taken
            (normally `BaseStorage.code_exists`).
        length: code length; defaults to settings.CODE_LENGTH.
        max_attempts: candidates tried before `AllocationExhausted`.
        backoff: seconds to sleep after each collision.
        generator: zero-arg callable returning a candidate; defaults to
            `RandomCodeStrategy(length)`.
    """

    def __init__(
        self,
        exists: Callable[[str], bool],
        length: Optional[int] = None,
        max_attempts: Optional[int] = None,
        backoff: Optional[float] = None,
        generator: Optional[CodeGenerator] = None,
    ):
        self.exists = exists
        self.length = _safe_len(length)
        self.max_attempts = int(max_attempts if max_attempts is not None else settings.CODE_MAX_ATTEMPTS)
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.backoff = float(backoff if backoff is not None else settings.CODE_BACKOFF_MS / 1000.0)
        self.generator: CodeGenerator = generator or RandomCodeStrategy(length=self.length)

    def candidates(self) -> Iterator[str]:
        """
        Yield codes that were free when checked, spending one attempt per
        generated candidate whether it collided here or was yielded.

        Raises:
            AllocationExhausted: once `max_attempts` candidates are spent.
            StorageError: the existence check itself failed.
        """
        for attempt in range(1, self.max_attempts + 1):
            code = self.generator()
            if self.exists(code):
                log.debug("code collision on %r (attempt %d/%d)", code, attempt, self.max_attempts)
                if self.backoff:
                    time.sleep(self.backoff)
                continue
            yield code
        raise AllocationExhausted(self.max_attempts)

    def allocate(self) -> str:
        """Return the first free candidate or raise `AllocationExhausted`."""
        return next(self.candidates())
