"""
Tests for Ed25519 signing of audit records
"""
import pytest

from hplm.engine import AuditRecorder, Evaluator, decide
from hplm.exceptions import SignatureInvalidError
from hplm.models import AuditRecord
from hplm.signing import (
    generate_ed25519_keypair,
    sign_bytes,
    sign_record,
    verify_record_signature,
    verify_signature,
)

from tests.conftest import fixed_clock


@pytest.fixture
def keypair():
    return generate_ed25519_keypair()


@pytest.fixture
def record(em_bond_ruleset, em_bond_facts):
    trace = Evaluator().evaluate(em_bond_ruleset, em_bond_facts).trace
    return AuditRecorder(clock=fixed_clock).record(
        em_bond_ruleset.version, em_bond_facts, trace, decide(trace),
    )


class TestSignBytes:
    """Tests for raw signing."""

    def test_key_sizes(self, keypair):
        private_key, public_key = keypair
        assert len(private_key) == 32
        assert len(public_key) == 32

    def test_sign_and_verify(self, keypair):
        private_key, public_key = keypair
        signature = sign_bytes(private_key, b"payload")
        assert len(signature) == 64
        assert verify_signature(public_key, b"payload", signature) is True
        assert verify_signature(public_key, b"other", signature) is False

    def test_deterministic(self, keypair):
        private_key, _ = keypair
        assert sign_bytes(private_key, b"payload") == sign_bytes(private_key, b"payload")

    def test_bad_private_key_length(self):
        with pytest.raises(SignatureInvalidError):
            sign_bytes(b"short", b"payload")

    def test_bad_signature_length(self, keypair):
        _, public_key = keypair
        with pytest.raises(SignatureInvalidError):
            verify_signature(public_key, b"payload", b"\x00" * 10)

    def test_private_key_must_be_bytes(self):
        with pytest.raises(SignatureInvalidError):
            sign_bytes("0" * 32, b"payload")


class TestRecordSignature:
    """Tests for signing audit records."""

    def test_round_trip(self, keypair, record):
        private_key, public_key = keypair
        signature = sign_record(record, private_key)
        assert verify_record_signature(record, public_key, signature) is True

    def test_survives_export(self, keypair, record):
        private_key, public_key = keypair
        signature = sign_record(record, private_key)
        reloaded = AuditRecord.from_json(record.to_json(indent=2))
        assert verify_record_signature(reloaded, public_key, signature) is True

    def test_wrong_key(self, keypair, record):
        private_key, _ = keypair
        _, other_public = generate_ed25519_keypair()
        signature = sign_record(record, private_key)
        assert verify_record_signature(record, other_public, signature) is False

    def test_resealed_record_fails(self, keypair, record):
        """Editing a field and recomputing the hash still breaks the signature."""
        private_key, public_key = keypair
        signature = sign_record(record, private_key)
        later = AuditRecorder(clock=lambda: fixed_clock().replace(year=2027))
        resealed = later.record(record.ruleset_version, record.input_facts, record.trace, record.decision)
        assert verify_record_signature(resealed, public_key, signature) is False
