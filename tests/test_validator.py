import pytest

from megakey.config import ExtractorConfig
from megakey.exceptions import ValidationRejected
from megakey.validator import FLAG_NO_SPECIAL_CHARACTERS, ensure_valid, validate


def test_short_key_rejected() -> None:
    outcome = validate("abcd", ExtractorConfig())
    assert outcome.accepted is False
    assert outcome.length == 4
    assert "too short" in outcome.reason


def test_mixed_case_key_accepted_and_flagged() -> None:
    outcome = validate("aB3dE5gHiJ7kL9mNoP1qR2sTuV4wX6yZ", ExtractorConfig())
    assert outcome.accepted is True
    assert outcome.reason == "ok"
    assert outcome.has_special_chars is False
    assert outcome.flags == (FLAG_NO_SPECIAL_CHARACTERS,)


def test_special_characters_clear_the_flag() -> None:
    outcome = validate("key-with_specials!", ExtractorConfig())
    assert outcome.accepted is True
    assert outcome.flags == ()


@pytest.mark.parametrize("candidate", ["has space inside", "tab\tseparated!", "ctrl\x01chars-here"])
def test_unprintable_keys_rejected(candidate: str) -> None:
    assert validate(candidate, ExtractorConfig()).accepted is False
    assert validate(candidate, ExtractorConfig(reject_unprintable=False)).accepted is True


def test_minimum_length_is_configurable() -> None:
    assert validate("abcd", ExtractorConfig(min_key_length=4)).accepted is True
    assert validate("abcdefghi", ExtractorConfig()).accepted is False
    assert validate("abcdefghij", ExtractorConfig()).accepted is True


def test_ensure_valid_raises_with_reason() -> None:
    with pytest.raises(ValidationRejected, match="too short"):
        ensure_valid("abcd", ExtractorConfig())
    assert ensure_valid("0123456789", ExtractorConfig()).length == 10
