"""Tests for relaytrace.models._validation shared helpers."""

from __future__ import annotations

import pytest

from relaytrace.models._validation import (
    validate_instance,
    validate_optional_bool,
    validate_str_no_null,
    validate_str_not_empty,
    validate_timestamp,
)


class TestValidateInstance:
    def test_correct_type_passes(self) -> None:
        validate_instance("hello", str, "field")

    def test_article_an_for_vowel(self) -> None:
        with pytest.raises(TypeError, match="field must be an int, got str"):
            validate_instance("x", int, "field")

    def test_article_a_for_consonant(self) -> None:
        with pytest.raises(TypeError, match="field must be a str, got int"):
            validate_instance(42, str, "field")


class TestValidateTimestamp:
    def test_zero_passes(self) -> None:
        validate_timestamp(0, "ts")

    def test_bool_rejected(self) -> None:
        with pytest.raises(TypeError, match="ts must be an int, got bool"):
            validate_timestamp(False, "ts")

    def test_float_rejected(self) -> None:
        with pytest.raises(TypeError):
            validate_timestamp(1.5, "ts")

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            validate_timestamp(-1, "ts")


class TestValidateOptionalBool:
    @pytest.mark.parametrize("value", [True, False, None])
    def test_accepted(self, value: bool | None) -> None:
        validate_optional_bool(value, "exit")

    def test_int_rejected(self) -> None:
        with pytest.raises(TypeError, match="exit must be a bool or None"):
            validate_optional_bool(1, "exit")


class TestValidateStr:
    def test_null_byte_rejected(self) -> None:
        with pytest.raises(ValueError, match="null bytes"):
            validate_str_no_null("a\x00b", "nickname")

    def test_empty_allowed_without_not_empty(self) -> None:
        validate_str_no_null("", "nickname")

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            validate_str_not_empty("", "nickname")
