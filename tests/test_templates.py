"""
Tests for mnemos.reasoning.templates — rule template matching.
"""

from __future__ import annotations

import pytest

from mnemos.reasoning.templates import (
    TemplateError,
    exact_matcher,
    loose_matcher,
    split_template,
    substitute,
)


class TestSplit:
    def test_segments(self):
        assert split_template("if {A} then {B}") == [
            ("literal", "if "),
            ("placeholder", "A"),
            ("literal", " then "),
            ("placeholder", "B"),
        ]

    def test_unbalanced_brace_is_literal(self):
        assert split_template("cost {") == [("literal", "cost {")]

    def test_non_string(self):
        with pytest.raises(TemplateError):
            split_template(["if {A}"])


class TestExactMatcher:
    def test_extracts_variables(self):
        assert exact_matcher("if {A} then {B}").extract("if rain then wet") == {
            "A": "rain",
            "B": "wet",
        }

    def test_shortest_capture_wins(self):
        variables = exact_matcher("if {A} then {B}").extract("if a then b then c")
        assert variables == {"A": "a", "B": "b then c"}

    def test_case_insensitive_literals(self):
        assert exact_matcher("if {A} then {B}").extract("IF Rain THEN Wet") == {
            "A": "Rain",
            "B": "Wet",
        }

    def test_whole_text_must_match(self):
        assert exact_matcher("{A} causes {B}").extract("smoke causes fire") == {
            "A": "smoke",
            "B": "fire",
        }
        assert exact_matcher("if {A} then {B}").extract("wet") is None

    def test_leading_text_is_not_skipped(self):
        assert exact_matcher("if {A} then {B}").extract("so if rain then wet") is None

    def test_surrounding_whitespace_is_part_of_the_text(self):
        matcher = exact_matcher("if {A} then {B}")
        assert matcher.extract(" if rain then wet") is None
        assert matcher.extract("if rain then wet ") == {"A": "rain", "B": "wet "}

    def test_repeated_placeholder_must_agree(self):
        matcher = exact_matcher("{A} is {A}")
        assert matcher.extract("x is x") == {"A": "x"}
        assert matcher.extract("x is y") is None

    def test_regex_characters_are_literal(self):
        assert exact_matcher("cost is ${X}.").extract("cost is $5.") == {"X": "5"}
        assert exact_matcher("cost is ${X}.").extract("cost is 5!") is None

    def test_template_without_placeholders(self):
        assert exact_matcher("hello").extract("hello") == {}

    def test_non_string_text(self):
        assert exact_matcher("{A}").extract(None) is None

    def test_non_string_template(self):
        with pytest.raises(TemplateError):
            exact_matcher(42)


class TestLooseMatcher:
    def test_matches_anywhere(self):
        assert loose_matcher("{A} causes {B}").matches("well, smoke causes fire here")

    def test_no_match(self):
        assert not loose_matcher("{A} causes {B}").matches("nothing relevant")

    def test_bare_placeholder_matches_any_text(self):
        assert loose_matcher("{A}").matches("anything")
        assert not loose_matcher("{A}").matches("")

    def test_non_string_template(self):
        with pytest.raises(TemplateError):
            loose_matcher(None)


class TestSubstitute:
    def test_every_occurrence(self):
        assert substitute("{A} and {A} or {B}", {"A": "x", "B": "y"}) == "x and x or y"

    def test_unknown_placeholder_left_alone(self):
        assert substitute("{A} {C}", {"A": "x"}) == "x {C}"

    def test_non_string_conclusion(self):
        with pytest.raises(TemplateError):
            substitute(7, {"A": "x"})
