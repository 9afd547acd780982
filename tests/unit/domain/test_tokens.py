"""
Unit tests for bridge sessions and download grants: token lifecycle,
expiry and consumption ordering, release on failure and the deleted-file
cases.
"""

import threading
from datetime import timedelta

import pytest

from filebridge.domain.errors import (
    FileTooLargeError,
    NotFoundError,
    TokenAlreadyConsumedError,
    TokenExpiredError,
    TokenNotFoundError,
)
from filebridge.domain.tokens import (
    BridgeKind,
    TokenKind,
    TokenRecord,
    TokenState,
    check_usable,
    generate_token,
    token_prefix,
)
from tests.conftest import KIB, payload


# =============================================================================
# Entities
# =============================================================================

class TestTokenRecord:
    def test_generated_tokens_are_url_safe_and_unique(self):
        tokens = {generate_token() for _ in range(100)}
        assert len(tokens) == 100
        for token in tokens:
            assert len(token) == 43
            assert all(c.isalnum() or c in "-_" for c in token)

    def test_issue_sets_expiry_from_ttl(self, clock):
        record = TokenRecord.issue(TokenKind.BRIDGE_UPLOAD, clock(), 300)

        assert record.expires_at == clock.now + timedelta(seconds=300)
        assert record.state is TokenState.AVAILABLE
        assert record.file_id is None

    @pytest.mark.parametrize("ttl", [0, -5])
    def test_issue_rejects_non_positive_ttl(self, clock, ttl):
        with pytest.raises(ValueError):
            TokenRecord.issue(TokenKind.DOWNLOAD, clock(), ttl)

    def test_expiry_is_inclusive(self, clock):
        record = TokenRecord.issue(TokenKind.DOWNLOAD, clock(), 60, file_id="f")
        assert not record.is_expired(clock.now + timedelta(seconds=59.999))
        assert record.is_expired(clock.now + timedelta(seconds=60))

    def test_round_trips_through_dict(self, clock):
        record = TokenRecord.issue(TokenKind.BRIDGE_DOWNLOAD, clock(), 300, file_id="abc")
        assert TokenRecord.from_dict(record.with_state(TokenState.RESERVED).to_dict()) == (
            record.with_state(TokenState.RESERVED)
        )

    def test_token_prefix_hides_most_of_the_token(self):
        assert token_prefix("abcdefghijklmnop") == "abcdefgh..."
        assert token_prefix(None) == "..."


class TestCheckUsable:
    def test_unknown_token(self, clock):
        with pytest.raises(TokenNotFoundError):
            check_usable(None, TokenKind.DOWNLOAD, clock())

    def test_wrong_kind_is_not_found(self, clock):
        record = TokenRecord.issue(TokenKind.BRIDGE_UPLOAD, clock(), 300)
        with pytest.raises(TokenNotFoundError):
            check_usable(record, TokenKind.BRIDGE_DOWNLOAD, clock())

    def test_expired_wins_over_consumed(self, clock):
        record = TokenRecord.issue(TokenKind.DOWNLOAD, clock(), 60).with_state(
            TokenState.CONSUMED
        )
        with pytest.raises(TokenExpiredError):
            check_usable(record, TokenKind.DOWNLOAD, clock.now + timedelta(seconds=61))

    @pytest.mark.parametrize("state", [TokenState.RESERVED, TokenState.CONSUMED])
    def test_reserved_or_consumed_is_already_consumed(self, clock, state):
        record = TokenRecord.issue(TokenKind.DOWNLOAD, clock(), 60).with_state(state)
        with pytest.raises(TokenAlreadyConsumedError):
            check_usable(record, TokenKind.DOWNLOAD, clock())


# =============================================================================
# Download grants
# =============================================================================

class TestDownloadTokenManager:
    def test_issue_for_unknown_file(self, download_manager):
        with pytest.raises(NotFoundError):
            download_manager.issue_for_file("missing")

    def test_issue_for_deleted_file(self, registry, download_manager):
        record = registry.create("gone.txt", payload(b"bye"))
        registry.delete(record.id)

        with pytest.raises(NotFoundError):
            download_manager.issue_for_file(record.id)

    def test_redeem_streams_file_once(self, registry, download_manager):
        record = registry.create("a.txt", payload(b"hello"))
        grant = download_manager.issue_for_file(record.id)

        handle = download_manager.redeem(grant.token)
        try:
            assert handle.record.id == record.id
            assert handle.stream.read() == b"hello"
        finally:
            handle.close()

        with pytest.raises(TokenAlreadyConsumedError):
            download_manager.redeem(grant.token)

    def test_expired_grant(self, registry, download_manager, clock):
        record = registry.create("a.txt", payload(b"hello"))
        grant = download_manager.issue_for_file(record.id)

        clock.advance(60)

        with pytest.raises(TokenExpiredError):
            download_manager.redeem(grant.token)

    def test_grant_for_deleted_file_is_not_found_and_spent(self, registry, download_manager):
        record = registry.create("a.txt", payload(b"hello"))
        grant = download_manager.issue_for_file(record.id)
        registry.delete(record.id)

        with pytest.raises(NotFoundError):
            download_manager.redeem(grant.token)
        with pytest.raises(TokenAlreadyConsumedError):
            download_manager.redeem(grant.token)

    def test_bridge_token_is_not_a_download_grant(self, bridge_manager, download_manager):
        session = bridge_manager.issue_upload_bridge()
        with pytest.raises(TokenNotFoundError):
            download_manager.redeem(session.token)


# =============================================================================
# Bridge sessions
# =============================================================================

class TestUploadBridge:
    def test_upload_consumes_bridge(self, bridge_manager, registry):
        session = bridge_manager.issue_upload_bridge()

        record, consumed = bridge_manager.consume_upload(
            session.token, "photo.jpg", payload(b"\xff\xd8\xff\xe0\x00\x10JFIF")
        )

        assert registry.get(record.id).name == "photo.jpg"
        assert consumed.consumed is True
        assert consumed.kind is BridgeKind.UPLOAD
        with pytest.raises(TokenAlreadyConsumedError):
            bridge_manager.consume_upload(session.token, "again.jpg", payload(b"x"))
        assert len(registry.list()) == 1

    def test_failed_upload_releases_bridge_for_retry(self, bridge_manager, registry):
        session = bridge_manager.issue_upload_bridge()

        with pytest.raises(FileTooLargeError):
            bridge_manager.consume_upload(
                session.token, "big.bin", payload(b"\x01" * (32 * KIB + 1))
            )

        assert bridge_manager.inspect(session.token, BridgeKind.UPLOAD).consumed is False
        record, _ = bridge_manager.consume_upload(session.token, "ok.txt", payload(b"fine"))
        assert registry.exists(record.id)

    def test_expired_upload_bridge(self, bridge_manager, clock):
        session = bridge_manager.issue_upload_bridge()
        clock.advance(300)

        with pytest.raises(TokenExpiredError):
            bridge_manager.consume_upload(session.token, "late.txt", payload(b"late"))

    def test_upload_token_at_download_endpoint_is_not_found(self, bridge_manager):
        session = bridge_manager.issue_upload_bridge()
        with pytest.raises(TokenNotFoundError):
            bridge_manager.consume_download(session.token)
        bridge_manager.inspect(session.token, BridgeKind.UPLOAD)

    def test_concurrent_uploads_single_winner(self, bridge_manager, registry):
        session = bridge_manager.issue_upload_bridge()
        barrier = threading.Barrier(8)
        results = []
        lock = threading.Lock()

        def attempt(i):
            barrier.wait()
            try:
                bridge_manager.consume_upload(session.token, f"{i}.txt", payload(b"data"))
                outcome = "ok"
            except TokenAlreadyConsumedError:
                outcome = "consumed"
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("ok") == 1
        assert results.count("consumed") == 7
        assert len(registry.list()) == 1


class TestDownloadBridge:
    def test_issue_for_unknown_file(self, bridge_manager):
        with pytest.raises(NotFoundError):
            bridge_manager.issue_download_bridge("missing")

    def test_issue_for_deleted_file(self, bridge_manager, registry):
        record = registry.create("gone.txt", payload(b"bye"))
        registry.delete(record.id)

        with pytest.raises(NotFoundError):
            bridge_manager.issue_download_bridge(record.id)

    def test_download_info_is_repeatable(self, bridge_manager, registry):
        record = registry.create("doc.txt", payload(b"document"))
        session = bridge_manager.issue_download_bridge(record.id)

        for _ in range(3):
            assert bridge_manager.resolve_for_download_info(session.token) == record

    def test_exchange_consumes_bridge(self, bridge_manager, download_manager, registry):
        record = registry.create("doc.txt", payload(b"document"))
        session = bridge_manager.issue_download_bridge(record.id)

        grant, consumed = bridge_manager.consume_download(session.token)

        assert grant.file_id == record.id
        assert consumed.consumed is True
        with pytest.raises(TokenAlreadyConsumedError):
            bridge_manager.consume_download(session.token)
        with pytest.raises(TokenAlreadyConsumedError):
            bridge_manager.resolve_for_download_info(session.token)
        handle = download_manager.redeem(grant.token)
        handle.close()

    def test_deleted_file_is_not_found_and_bridge_released(self, bridge_manager, registry):
        record = registry.create("doc.txt", payload(b"document"))
        session = bridge_manager.issue_download_bridge(record.id)
        registry.delete(record.id)

        with pytest.raises(NotFoundError):
            bridge_manager.resolve_for_download_info(session.token)
        with pytest.raises(NotFoundError):
            bridge_manager.consume_download(session.token)
        assert bridge_manager.inspect(session.token, BridgeKind.DOWNLOAD).consumed is False

    def test_expired_download_bridge(self, bridge_manager, registry, clock):
        record = registry.create("doc.txt", payload(b"document"))
        session = bridge_manager.issue_download_bridge(record.id)
        clock.advance(301)

        with pytest.raises(TokenExpiredError):
            bridge_manager.resolve_for_download_info(session.token)
        with pytest.raises(TokenExpiredError):
            bridge_manager.consume_download(session.token)


class TestPeek:
    def test_peek_accepts_both_bridge_kinds(self, bridge_manager, registry):
        record = registry.create("doc.txt", payload(b"document"))
        upload = bridge_manager.issue_upload_bridge()
        download = bridge_manager.issue_download_bridge(record.id)

        assert bridge_manager.peek(upload.token).kind is BridgeKind.UPLOAD
        assert bridge_manager.peek(download.token).kind is BridgeKind.DOWNLOAD

    def test_peek_rejects_download_grants(self, bridge_manager, download_manager, registry):
        record = registry.create("doc.txt", payload(b"document"))
        grant = download_manager.issue_for_file(record.id)

        with pytest.raises(TokenNotFoundError):
            bridge_manager.peek(grant.token)


def test_purged_token_reports_not_found(bridge_manager, token_repository, clock):
    session = bridge_manager.issue_upload_bridge()
    clock.advance(300 + 3600)

    assert token_repository.purge(clock(), 3600) == 1
    with pytest.raises(TokenNotFoundError):
        bridge_manager.inspect(session.token, BridgeKind.UPLOAD)


def test_expired_token_kept_until_retention_ends(bridge_manager, token_repository, clock):
    session = bridge_manager.issue_upload_bridge()
    clock.advance(300 + 3599)

    assert token_repository.purge(clock(), 3600) == 0
    with pytest.raises(TokenExpiredError):
        bridge_manager.inspect(session.token, BridgeKind.UPLOAD)
