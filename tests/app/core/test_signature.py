"""Tests for LINE signature verification."""

import pytest

from app.core.signature import SignatureVerifier
from app.exceptions import SignatureInvalid
from tests.fixtures.line_events import CHANNEL_SECRET, envelope, follow_event, sign


@pytest.fixture
def verifier():
    return SignatureVerifier(CHANNEL_SECRET)


def test_valid_signature_passes(verifier):
    body = envelope(follow_event())
    verifier.verify(body, sign(body))


def test_compute_matches_platform_algorithm(verifier):
    body = b'{"destination":"U1","events":[]}'
    assert verifier.compute(body) == sign(body)


def test_signature_for_other_secret_is_rejected(verifier):
    body = envelope(follow_event())
    with pytest.raises(SignatureInvalid):
        verifier.verify(body, sign(body, secret="another-secret"))


def test_any_flipped_body_byte_is_rejected(verifier):
    body = envelope(follow_event())
    signature = sign(body)
    for index in range(0, len(body), 7):
        tampered = bytearray(body)
        tampered[index] ^= 0x01
        with pytest.raises(SignatureInvalid):
            verifier.verify(bytes(tampered), signature)


def test_reserialized_body_is_rejected(verifier):
    """Whitespace differences change the digest; verification uses raw bytes."""
    body = b'{"destination": "U1", "events": []}'
    compact = b'{"destination":"U1","events":[]}'
    with pytest.raises(SignatureInvalid):
        verifier.verify(compact, sign(body))


@pytest.mark.parametrize("header", [None, ""])
def test_missing_header_is_rejected(verifier, header):
    with pytest.raises(SignatureInvalid, match="missing"):
        verifier.verify(b"{}", header)


def test_any_changed_signature_character_is_rejected(verifier):
    body = envelope(follow_event())
    signature = sign(body)
    for index, char in enumerate(signature):
        replacement = "A" if char != "A" else "B"
        tampered = signature[:index] + replacement + signature[index + 1 :]
        with pytest.raises(SignatureInvalid):
            verifier.verify(body, tampered)


def test_non_ascii_header_is_rejected(verifier):
    with pytest.raises(SignatureInvalid):
        verifier.verify(b"{}", "sïgnature")


def test_empty_secret_rejects_everything():
    verifier = SignatureVerifier("")
    body = b"{}"
    with pytest.raises(SignatureInvalid, match="not configured"):
        verifier.verify(body, sign(body, secret=""))
