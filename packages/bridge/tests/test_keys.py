"""Tests for subscription key encoding."""

import pytest

from gh_slack_bridge.keys import (
    InvalidKeyError,
    RepositoryKey,
    SubscriptionKey,
    decode_key,
    encode_key,
    encode_prefix,
)


@pytest.mark.parametrize(
    "fields",
    [
        ("monalisa", "smile", "A0HELLO", 1, "T123", "C456"),
        ("octo-org", "repo.with.dots", "A1", 987654321, "T0", "C0"),
        ("MixedCase", "Repo_Name", "A1", 12, "E-team", "G-private"),
    ],
)
def test_encode_decode_round_trip(fields):
    key = SubscriptionKey(*fields)
    encoded = encode_key(key)

    assert decode_key(encoded) == key
    assert encoded.startswith(encode_prefix(key.repository))


def test_encoded_layout():
    key = SubscriptionKey("monalisa", "smile", "A0HELLO", 1, "T123", "C456")
    assert encode_key(key) == "monalisa/smile/A0HELLO/1/T123/C456"
    assert encode_prefix(key) == "monalisa/smile/A0HELLO/1/"


def test_prefix_does_not_match_longer_installation_id():
    one = RepositoryKey("monalisa", "smile", "A1", 1)
    twelve = RepositoryKey("monalisa", "smile", "A1", 12).channel("T1", "C1")
    assert not encode_key(twelve).startswith(encode_prefix(one))


def test_case_is_preserved():
    key = SubscriptionKey("MonaLisa", "Smile", "A1", 1, "T1", "C1")
    assert encode_key(key).startswith("MonaLisa/Smile/")


@pytest.mark.parametrize(
    "fields",
    [
        ("", "smile", "A1", 1, "T1", "C1"),
        ("mona/lisa", "smile", "A1", 1, "T1", "C1"),
        ("monalisa", "smile", "A1", 0, "T1", "C1"),
        ("monalisa", "smile", "A1", -3, "T1", "C1"),
        ("monalisa", "smile", "A1", "1", "T1", "C1"),
        ("monalisa", "smile", "A1", 1, "", "C1"),
        ("monalisa", "smile", "A1", 1, "T1", ""),
    ],
)
def test_invalid_fields_rejected(fields):
    with pytest.raises(InvalidKeyError):
        SubscriptionKey(*fields)


@pytest.mark.parametrize(
    "value",
    [
        "monalisa/smile/A1/1/",
        "monalisa/smile/A1/1/T1",
        "monalisa/smile/A1/1/T1/C1/extra",
        "monalisa/smile/A1/one/T1/C1",
    ],
)
def test_decode_rejects_malformed_keys(value):
    with pytest.raises(InvalidKeyError):
        decode_key(value)
