import time
from datetime import datetime, timedelta, timezone

import pytest

from rpckeys.core.errors import (
    DomainMismatch,
    InvalidNonce,
    MessageExpired,
    SignatureMismatch,
    Unauthorized,
)
from rpckeys.core.siwe_auth import generate_nonce, recover_address, verify_auth_message
from rpckeys.models.auth import AuthNonce
from rpckeys.services.nonce_store import NonceStore
from tests.helpers import build_message, sign


def _iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


class TestGenerateNonce:
    def test_default_is_256_bits_of_hex(self):
        nonce = generate_nonce()
        assert len(nonce) == 64
        int(nonce, 16)

    def test_never_below_128_bits(self):
        assert len(generate_nonce(4)) == 64

    def test_values_differ(self):
        assert generate_nonce() != generate_nonce()


class TestVerifyAuthMessage:
    @pytest.fixture
    def store(self, db):
        return NonceStore(db)

    def test_valid_signature_returns_checksummed_address(self, store, alice):
        message = build_message(alice.address, store.issue().value)
        assert verify_auth_message(message, sign(alice, message), store) == alice.address

    def test_scenario_replay_fails_with_invalid_nonce(self, db, store, alice):
        now = int(time.time())
        db.add(AuthNonce(nonce="abc12345", created_at=now, expires_at=now + 300))
        db.commit()
        message = build_message(alice.address, "abc12345")
        signature = sign(alice, message)

        assert verify_auth_message(message, signature, store) == alice.address
        with pytest.raises(InvalidNonce):
            verify_auth_message(message, signature, store)

    def test_signature_from_other_key_is_mismatch(self, store, alice, bob):
        message = build_message(alice.address, store.issue().value)
        with pytest.raises(SignatureMismatch):
            verify_auth_message(message, sign(bob, message), store)

    def test_signature_over_other_text_is_mismatch(self, store, alice):
        message = build_message(alice.address, store.issue().value)
        other = message.model_copy(update={"statement": "Something else"})
        with pytest.raises(SignatureMismatch):
            verify_auth_message(message, sign(alice, other), store)

    @pytest.mark.parametrize("signature", ["0x", "0xzz", "0x" + "00" * 65, "0x" + "ab" * 64])
    def test_malformed_signature_is_mismatch(self, store, alice, signature):
        message = build_message(alice.address, store.issue().value)
        with pytest.raises(SignatureMismatch):
            verify_auth_message(message, signature, store)

    def test_domain_mismatch_does_not_consume_nonce(self, store, alice):
        nonce = store.issue().value
        phishing = build_message(alice.address, nonce, domain="evil.example")
        with pytest.raises(DomainMismatch):
            verify_auth_message(phishing, sign(alice, phishing), store)

        message = build_message(alice.address, nonce)
        assert verify_auth_message(message, sign(alice, message), store) == alice.address

    def test_expired_message(self, store, alice):
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        message = build_message(alice.address, store.issue().value, expiration_time=_iso(past))
        with pytest.raises(MessageExpired):
            verify_auth_message(message, sign(alice, message), store)

    def test_not_yet_valid_message(self, store, alice):
        future = datetime.now(timezone.utc) + timedelta(minutes=5)
        message = build_message(alice.address, store.issue().value, not_before=_iso(future))
        with pytest.raises(MessageExpired):
            verify_auth_message(message, sign(alice, message), store)

    def test_issued_at_outside_window(self, store, alice):
        old = datetime.now(timezone.utc) - timedelta(hours=1)
        message = build_message(alice.address, store.issue().value, issued_at=_iso(old))
        with pytest.raises(MessageExpired):
            verify_auth_message(message, sign(alice, message), store, max_age_seconds=600)

    def test_issued_at_window_can_be_disabled(self, store, alice):
        old = datetime.now(timezone.utc) - timedelta(hours=1)
        message = build_message(alice.address, store.issue().value, issued_at=_iso(old))
        assert verify_auth_message(message, sign(alice, message), store, max_age_seconds=0) == alice.address

    def test_issued_in_the_future(self, store, alice):
        future = datetime.now(timezone.utc) + timedelta(hours=1)
        message = build_message(alice.address, store.issue().value, issued_at=_iso(future))
        with pytest.raises(MessageExpired):
            verify_auth_message(message, sign(alice, message), store)

    def test_small_clock_skew_is_tolerated(self, store, alice):
        ahead = datetime.now(timezone.utc) + timedelta(seconds=20)
        message = build_message(alice.address, store.issue().value, issued_at=_iso(ahead))
        assert verify_auth_message(message, sign(alice, message), store) == alice.address

    def test_signed_text_is_verified_as_received(self, store, alice):
        message = build_message(alice.address, store.issue().value)
        text = message.prepare_message()
        assert verify_auth_message(message, sign(alice, text), store, text=text) == alice.address

    def test_signed_text_other_than_received_is_mismatch(self, store, alice):
        message = build_message(alice.address, store.issue().value)
        other = build_message(alice.address, message.nonce, statement="Something else").prepare_message()
        with pytest.raises(SignatureMismatch):
            verify_auth_message(message, sign(alice, other), store, text=message.prepare_message())

    def test_unknown_nonce(self, store, alice):
        message = build_message(alice.address, "deadbeef00")
        with pytest.raises(InvalidNonce):
            verify_auth_message(message, sign(alice, message), store)

    def test_failures_are_unauthorized_with_generic_detail(self, store, alice, bob):
        message = build_message(alice.address, store.issue().value)
        with pytest.raises(Unauthorized) as exc_info:
            verify_auth_message(message, sign(bob, message), store)
        assert exc_info.value.detail == "Invalid signature"
        assert bob.address not in exc_info.value.detail


class TestRecoverAddress:
    def test_recovers_signer(self, alice):
        message = build_message(alice.address, "abc12345")
        assert recover_address(message.prepare_message(), sign(alice, message)) == alice.address

    def test_accepts_signature_without_prefix(self, alice):
        message = build_message(alice.address, "abc12345")
        assert recover_address(message.prepare_message(), sign(alice, message)[2:]) == alice.address
