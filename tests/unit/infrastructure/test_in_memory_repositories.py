"""
Unit tests for the in-memory token and blob repositories.
"""

import threading
from datetime import timedelta

import pytest

from filebridge.domain.errors import (
    TokenAlreadyConsumedError,
    TokenExpiredError,
    TokenNotFoundError,
)
from filebridge.domain.tokens import TokenKind, TokenRecord, TokenState
from filebridge.infrastructure.in_memory_file_storage_repository import (
    InMemoryFileStorageRepository,
)
from filebridge.infrastructure.in_memory_token_repository import InMemoryTokenRepository
from tests.conftest import payload


@pytest.fixture
def record(clock):
    return TokenRecord.issue(TokenKind.BRIDGE_UPLOAD, clock(), 60)


class TestInMemoryTokenRepository:
    def test_add_and_get(self, token_repository, record):
        token_repository.add(record)
        assert token_repository.get(record.token) == record
        assert token_repository.get("") is None
        assert token_repository.get("unknown") is None

    def test_reserve_release_commit(self, token_repository, record, clock):
        token_repository.add(record)

        reserved = token_repository.reserve(record.token, TokenKind.BRIDGE_UPLOAD, clock())
        assert reserved.state is TokenState.RESERVED
        with pytest.raises(TokenAlreadyConsumedError):
            token_repository.reserve(record.token, TokenKind.BRIDGE_UPLOAD, clock())

        token_repository.release(record.token)
        assert token_repository.get(record.token).state is TokenState.AVAILABLE

        token_repository.reserve(record.token, TokenKind.BRIDGE_UPLOAD, clock())
        token_repository.commit(record.token)
        assert token_repository.get(record.token).state is TokenState.CONSUMED

    def test_release_does_not_revive_consumed(self, token_repository, record, clock):
        token_repository.add(record)
        token_repository.consume(record.token, TokenKind.BRIDGE_UPLOAD, clock())

        token_repository.release(record.token)

        assert token_repository.get(record.token).state is TokenState.CONSUMED

    def test_wrong_kind_is_not_found(self, token_repository, record, clock):
        token_repository.add(record)
        with pytest.raises(TokenNotFoundError):
            token_repository.consume(record.token, TokenKind.DOWNLOAD, clock())
        with pytest.raises(TokenNotFoundError):
            token_repository.consume("", TokenKind.BRIDGE_UPLOAD, clock())

    def test_expired_wins_over_consumed(self, token_repository, record, clock):
        token_repository.add(record)
        token_repository.consume(record.token, TokenKind.BRIDGE_UPLOAD, clock())
        clock.advance(60)

        with pytest.raises(TokenExpiredError):
            token_repository.consume(record.token, TokenKind.BRIDGE_UPLOAD, clock())

    def test_concurrent_consume_has_one_winner(self, token_repository, record, clock):
        token_repository.add(record)
        winners, losers = [], []
        barrier = threading.Barrier(10)

        def attempt():
            barrier.wait()
            try:
                token_repository.consume(record.token, TokenKind.BRIDGE_UPLOAD, clock())
                winners.append(1)
            except TokenAlreadyConsumedError:
                losers.append(1)

        threads = [threading.Thread(target=attempt) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(winners) == 1
        assert len(losers) == 9

    def test_purge_respects_retention(self, token_repository, record, clock):
        token_repository.add(record)
        now = record.expires_at + timedelta(seconds=59)

        assert token_repository.purge(now, 60) == 0
        assert token_repository.purge(now + timedelta(seconds=1), 60) == 1
        assert len(token_repository) == 0


class TestInMemoryFileStorageRepository:
    def test_save_and_get(self):
        storage = InMemoryFileStorageRepository()

        assert storage.save("f1/r1", payload(b"hello")) == 5
        assert storage.exists("f1/r1")
        assert storage.get_size("f1/r1") == 5
        assert storage.get("f1/r1").read() == b"hello"

    def test_missing_key(self):
        storage = InMemoryFileStorageRepository()

        assert storage.get("nope") is None
        assert storage.get_size("nope") is None
        assert storage.delete("nope") is True

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            InMemoryFileStorageRepository().save(" ", payload(b"x"))

    def test_open_reader_survives_delete(self):
        storage = InMemoryFileStorageRepository()
        storage.save("k", payload(b"data"))

        stream = storage.get("k")
        storage.delete("k")

        assert stream.read() == b"data"
        assert storage.keys() == []
