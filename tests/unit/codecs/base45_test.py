import pytest

from visa_seal.exceptions import FormatError
from visa_seal.utils.base45 import b45decode, b45encode


@pytest.mark.parametrize(
    ("data", "text"),
    [
        (b"AB", "BB8"),
        (b"Hello!!", "%69 VD92EX0"),
        (b"base-45", "UJCLQE7W581"),
        (b"ietf!", "QED8WEX0"),
        (b"", ""),
    ],
)
def test_known_values(data, text):
    assert b45encode(data) == text
    assert b45decode(text) == data


def test_every_byte_value_round_trips():
    data = bytes(range(256))
    assert b45decode(b45encode(data)) == data


def test_odd_tail_uses_two_characters():
    assert len(b45encode(b"\x00\x01\x02")) == 5


@pytest.mark.parametrize("text", ["A", "ABCD", "BB8B"])
def test_rejects_length_one_mod_three(text):
    with pytest.raises(FormatError):
        b45decode(text)


def test_rejects_character_outside_alphabet():
    with pytest.raises(FormatError, match="position 1"):
        b45decode("Bb8")


def test_rejects_group_above_65535():
    with pytest.raises(FormatError, match="exceeds 65535"):
        b45decode("GGW")


def test_rejects_tail_above_255():
    with pytest.raises(FormatError, match="exceeds 255"):
        b45decode("ZZ")
