"""
LinkStore module for the Affiliate Platform.

Responsibilities:
    - Validate and create affiliate links with a freshly allocated unique code
    - Resolve codes to links for the redirect path
    - List links for reporting and build their public `full_link`

Design notes:
    - Allocation checks existence, but the check and the insert are separate
      statements. Two concurrent creations can pick the same candidate; the
      store's unique constraint rejects the loser with `CodeConflictError`,
      and we resume the *same* candidate budget instead of failing.
    - Storage is an injected dependency; nothing here holds a global handle.

LLM Prompt Example:
    "Show how a unique index plus a bounded retry loop replaces a global lock
    for allocating random short codes under concurrent inserts."
"""

import logging
from typing import List, Optional

from ..config import settings
from ..errors import CodeConflictError, ValidationError
from ..models import AffiliateLink
from ..storage.base import BaseStorage
from .allocator import CodeAllocator

log = logging.getLogger(__name__)


class LinkStore:
    """
    Owns the AffiliateLink collection.

    Args:
        storage: backend implementing `BaseStorage`.
        allocator: code allocator; built against `storage.code_exists` when omitted.
        base_url: prefix joined with a code to build `full_link`.
    """

    def __init__(
        self,
        storage: BaseStorage,
        allocator: Optional[CodeAllocator] = None,
        base_url: Optional[str] = None,
    ):
        self.storage = storage
        self.allocator = allocator or CodeAllocator(exists=storage.code_exists)
        self.base_url = settings.LINK_BASE_URL if base_url is None else base_url

    # ---------------------------------------------------------------------
    # Validation helpers
    # ---------------------------------------------------------------------
    @staticmethod
    def _validate_target_url(target_url) -> str:
        if not isinstance(target_url, str) or not target_url.strip():
            raise ValidationError("target_url is required")
        return target_url

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------
    def create(self, target_url: str, affiliate_id: Optional[str] = None) -> AffiliateLink:
        """
        Create an affiliate link with a unique code.

        Rules:
            - `target_url` must be a non-blank string (checked before allocation).
            - An empty `affiliate_id` is stored as None.
            - A unique-code conflict on insert consumes one attempt and retries
              with the next candidate from the same budget.

        Raises:
            ValidationError: missing target URL.
            AllocationExhausted: no free code within the retry budget.
            StorageError: the store failed for any other reason.
        """
        target_url = self._validate_target_url(target_url)
        affiliate_id = affiliate_id or None

        for code in self.allocator.candidates():
            try:
                link = self.storage.insert_link(target_url, code, affiliate_id)
            except CodeConflictError:
                log.info("unique_code %r taken between check and insert; retrying", code)
                continue
            log.info("created link id=%s code=%s affiliate=%s", link.id, link.unique_code, affiliate_id)
            return link
        # candidates() raises AllocationExhausted when the budget runs out.
        raise AssertionError("unreachable")  # pragma: no cover

    def resolve(self, code: str) -> Optional[AffiliateLink]:
        """Return the link for `code`, or None when no link uses it."""
        if not code:
            return None
        return self.storage.get_link_by_code(code)

    def get(self, link_id: int) -> Optional[AffiliateLink]:
        return self.storage.get_link(link_id)

    def list_all(self) -> List[AffiliateLink]:
        return self.storage.list_links()

    def full_link(self, link: AffiliateLink) -> str:
        return f"{self.base_url}{link.unique_code}"
