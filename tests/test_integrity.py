"""Tests for the SHA-256 Integrity Hasher."""

import hashlib

import pytest

from cardvault.crypto import generate_integrity_hash, verify_integrity_hash
from cardvault.exceptions import MalformedInputError


def test_known_digest():
    assert generate_integrity_hash("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_hashes_utf8_bytes():
    assert generate_integrity_hash("café") == hashlib.sha256("café".encode("utf-8")).hexdigest()


def test_deterministic():
    data = "ct1|ct2|4242"
    assert generate_integrity_hash(data) == generate_integrity_hash(data)


def test_distinct_inputs_distinct_digests():
    inputs = [f"ct{i}|exp{i}|{i:04d}" for i in range(1000)] + [""]
    digests = {generate_integrity_hash(s) for s in inputs}
    assert len(digests) == len(inputs)


def test_verify_correct_hash():
    data = "ct1|ct2|4242"
    assert verify_integrity_hash(data, generate_integrity_hash(data)) is True


def test_verify_accepts_uppercase_hex():
    data = "ct1|ct2|4242"
    assert verify_integrity_hash(data, generate_integrity_hash(data).upper()) is True


def test_verify_wrong_hash_same_length():
    wrong = generate_integrity_hash("something else")
    assert verify_integrity_hash("ct1|ct2|4242", wrong) is False


def test_verify_wrong_hash_different_length():
    correct = generate_integrity_hash("ct1|ct2|4242")
    assert verify_integrity_hash("ct1|ct2|4242", correct[:32]) is False
    assert verify_integrity_hash("ct1|ct2|4242", correct + "00") is False
    assert verify_integrity_hash("ct1|ct2|4242", "") is False


def test_verify_single_nibble_difference():
    correct = generate_integrity_hash("ct1|ct2|4242")
    last = "0" if correct[-1] != "0" else "1"
    assert verify_integrity_hash("ct1|ct2|4242", correct[:-1] + last) is False


@pytest.mark.parametrize("bad", ["zz" * 32, "abc", "not-hex"])
def test_verify_malformed_hex_raises(bad):
    with pytest.raises(MalformedInputError):
        verify_integrity_hash("data", bad)


@pytest.mark.parametrize(
    "position, filler",
    [(32, " "), (0, " "), (64, "\n"), (10, "\t")],
)
def test_verify_rejects_embedded_whitespace(position, filler):
    data = "ct1|ct2|4242"
    digest = generate_integrity_hash(data)
    padded = digest[:position] + filler + digest[position:]
    with pytest.raises(MalformedInputError):
        verify_integrity_hash(data, padded)
