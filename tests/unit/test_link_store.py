"""
Unit tests for LinkStore.

Covers:
    - Target URL validation before any allocation
    - Create/resolve round trip and full_link construction
    - Insert-time code conflicts retried within the allocation budget
    - Budget exhaustion when every insert conflicts
"""

import pytest

from affiliate_platform.errors import AllocationExhausted, CodeConflictError, StorageError, ValidationError
from affiliate_platform.manager.allocator import CodeAllocator
from affiliate_platform.manager.link_store import LinkStore
from affiliate_platform.storage.storage import Storage


@pytest.mark.parametrize("bad", ["", "   ", None])
def test_create_rejects_missing_target_url_without_allocating(storage, bad):
    def exploding_exists(code):
        raise AssertionError("allocation must not run")

    store = LinkStore(storage, allocator=CodeAllocator(exists=exploding_exists))
    with pytest.raises(ValidationError, match="target_url is required"):
        store.create(bad)
    assert storage.list_links() == []


def test_create_then_resolve_returns_exact_target(link_store):
    link = link_store.create("https://example.com", "user123")

    assert link.id == 1
    assert len(link.unique_code) == 8
    assert link.affiliate_id == "user123"

    resolved = link_store.resolve(link.unique_code)
    assert resolved is not None
    assert resolved.target_url == "https://example.com"
    assert resolved.id == link.id


def test_resolve_unknown_code_is_none(link_store):
    link_store.create("https://example.com")
    assert link_store.resolve("NOPE0000") is None
    assert link_store.resolve("") is None


def test_empty_affiliate_id_stored_as_none(link_store):
    link = link_store.create("https://example.com", "")
    assert link.affiliate_id is None


def test_full_link_concatenates_base_and_code(link_store):
    link = link_store.create("https://example.com")
    assert link_store.full_link(link) == f"https://aff.test/go?code={link.unique_code}"


def test_list_all_in_creation_order(link_store):
    a = link_store.create("https://a.example")
    b = link_store.create("https://b.example")
    assert [l.id for l in link_store.list_all()] == [a.id, b.id]
    assert link_store.get(b.id) == b
    assert link_store.get(999) is None


class RacingStorage(Storage):
    """Reports codes as free but loses the insert race a fixed number of times."""

    def __init__(self, conflicts: int):
        super().__init__()
        self.conflicts = conflicts
        self.insert_attempts = 0

    def code_exists(self, unique_code):
        return False

    def insert_link(self, target_url, unique_code, affiliate_id=None):
        self.insert_attempts += 1
        if self.conflicts:
            self.conflicts -= 1
            raise CodeConflictError(unique_code)
        return super().insert_link(target_url, unique_code, affiliate_id)


def test_insert_conflict_is_retried():
    storage = RacingStorage(conflicts=2)
    store = LinkStore(storage, allocator=CodeAllocator(exists=storage.code_exists, max_attempts=10))
    link = store.create("https://example.com")
    assert storage.insert_attempts == 3
    assert store.resolve(link.unique_code) == link


def test_insert_conflicts_consume_same_budget():
    storage = RacingStorage(conflicts=100)
    store = LinkStore(storage, allocator=CodeAllocator(exists=storage.code_exists, max_attempts=4))
    with pytest.raises(AllocationExhausted):
        store.create("https://example.com")
    assert storage.insert_attempts == 4


def test_every_candidate_taken_raises_exhausted(storage):
    store = LinkStore(
        storage,
        allocator=CodeAllocator(exists=lambda c: True, max_attempts=10, generator=lambda: "SAMECODE"),
    )
    with pytest.raises(AllocationExhausted):
        store.create("https://example.com")
    assert storage.list_links() == []


def test_storage_error_propagates(storage, monkeypatch):
    def broken(*args, **kwargs):
        raise StorageError("db down")

    monkeypatch.setattr(storage, "insert_link", broken)
    store = LinkStore(storage)
    with pytest.raises(StorageError, match="db down"):
        store.create("https://example.com")
