"""Tests for the general purpose parsers."""

import pytest

from parcomb import ParseError, string, token
from parcomb.general import any_token, digit, letter, whitespace, ws


class TestLetter:
    @pytest.mark.parametrize("char", ["a", "z", "A", "Z", "q"])
    def test_matches_letters(self, char):
        assert letter().parse(char) == char

    def test_reports_name(self):
        assert str(letter().parse("0")) == "expected letter, but found 0"
        assert str(letter().parse("")) == "expected letter, but found end of input"

    def test_outer_name_wins(self):
        assert str(letter().name("identifier").parse("_")) == "expected identifier, but found _"


class TestDigit:
    def test_matches_digits(self):
        assert digit().repeat(at_least=1).join().parse("0123456789") == "0123456789"

    def test_reports_name(self):
        assert str(digit().parse("x")) == "expected digit, but found x"


class TestWhitespace:
    @pytest.mark.parametrize("char", [" ", "\t", "\r", "\n"])
    def test_matches_whitespace(self, char):
        assert whitespace().parse(char) == char

    def test_reports_name(self):
        assert str(whitespace().parse("a")) == "expected whitespace, but found a"

    def test_ws(self):
        assert ws().parse("") == []
        assert ws().parse(" \t\n") == [" ", "\t", "\n"]
        assert (ws() >> token("a") << ws()).parse("  a  ") == "a"

    def test_found_whitespace_is_named(self):
        assert str(string("ab").parse("a ")) == "expected ab, but found space"


class TestAnyToken:
    def test_matches_anything(self):
        assert any_token().parse("x") == "x"
        assert any_token().parse([None]) is None

    def test_fails_at_end_of_input(self):
        result = any_token().parse("")
        assert isinstance(result, ParseError)
        assert str(result) == "expected anything, but found end of input"
