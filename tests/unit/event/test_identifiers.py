"""
Unit Tests for Identifiers and Event Routing
=============================================

Purpose
-------
Test identifier normalization and event-name matching.

Test Coverage
-------------
- parse_identifier for names, patterns, lists and invalid values
- Pattern identity by source text and flags
- EventRouter exact and search-based pattern matching
- Listener record labels

Testing Strategy
----------------
- Pure unit tests, no emitter involved
- AAA pattern (Arrange, Act, Assert)
"""

import re

import pytest

from emitter.core.event.router import EventRouter
from emitter.core.event.types import (
    ExactName,
    IdentifierList,
    Listener,
    NamePattern,
    parse_identifier,
)


# ============================================================================
# PARSING TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestParseIdentifier:
    """Test normalization of raw subscription arguments."""

    def test_string_becomes_exact_name(self):
        """A plain string is an exact event name."""
        assert parse_identifier("user.created") == ExactName("user.created")

    def test_empty_string_is_a_valid_name(self):
        """The empty string is still a string name."""
        assert parse_identifier("") == ExactName("")

    def test_compiled_pattern_becomes_name_pattern(self):
        """A compiled text pattern is a NamePattern."""
        # Arrange
        pattern = re.compile(r"^user\.")

        # Act
        parsed = parse_identifier(pattern)

        # Assert
        assert isinstance(parsed, NamePattern)
        assert parsed.pattern is pattern

    def test_list_is_expanded_recursively(self):
        """Nested lists and tuples keep their order."""
        # Arrange
        pattern = re.compile("b")

        # Act
        parsed = parse_identifier(["a", [pattern, ("c",)]])

        # Assert
        assert parsed == IdentifierList(
            (
                ExactName("a"),
                IdentifierList((NamePattern(pattern), IdentifierList((ExactName("c"),)))),
            )
        )

    def test_invalid_elements_are_dropped(self):
        """Non-identifier elements inside a list are skipped."""
        parsed = parse_identifier(["a", 1, None, "b"])

        assert parsed == IdentifierList((ExactName("a"), ExactName("b")))

    @pytest.mark.parametrize("value", [None, 42, 3.5, {"a": 1}, object(), re.compile(b"x")])
    def test_invalid_values_return_none(self, value):
        """Anything that is not a name, pattern or sequence is rejected."""
        assert parse_identifier(value) is None

    def test_parsed_identifiers_pass_through(self):
        """Already parsed identifiers are returned unchanged."""
        identifier = ExactName("x")

        assert parse_identifier(identifier) is identifier


@pytest.mark.unit
@pytest.mark.event
class TestPatternIdentity:
    """Test that patterns are compared by text, not by object."""

    def test_equal_source_and_flags_share_a_key(self):
        """Two compilations of the same pattern are the same pattern."""
        left = NamePattern(re.compile("abc"))
        right = NamePattern(re.compile("abc"))

        assert left.key == right.key
        assert EventRouter.same_pattern(left, right)

    def test_flags_are_part_of_identity(self):
        """Differing flags make different patterns."""
        left = NamePattern(re.compile("abc"))
        right = NamePattern(re.compile("abc", re.IGNORECASE))

        assert not EventRouter.same_pattern(left, right)

    def test_string_form_is_slash_delimited(self):
        """Patterns render as /source/ so they never look like names."""
        assert str(NamePattern(re.compile("^a$"))) == "/^a$/"


# ============================================================================
# ROUTER TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestEventRouter:
    """Test event-name matching."""

    def setup_method(self):
        self.router = EventRouter()

    def test_exact_name_requires_equality(self):
        """ExactName only matches the identical name."""
        assert self.router.matches("user.created", ExactName("user.created"))
        assert not self.router.matches("user.created.v2", ExactName("user.created"))

    def test_pattern_uses_search_semantics(self):
        """Unanchored patterns match anywhere in the name."""
        pattern = NamePattern(re.compile("created"))

        assert self.router.matches("user.created", pattern)
        assert self.router.matches("created.at", pattern)
        assert not self.router.matches("user.deleted", pattern)

    def test_anchored_pattern(self):
        """Anchors are honored."""
        pattern = NamePattern(re.compile(r"^job/(?:success|failure)"))

        assert self.router.matches("job/success", pattern)
        assert self.router.matches("job/failure/retry", pattern)
        assert not self.router.matches("job/none", pattern)
        assert not self.router.matches("x/job/success", pattern)

    def test_ignorecase_flag(self):
        """Pattern flags apply during matching."""
        pattern = NamePattern(re.compile("USER", re.IGNORECASE))

        assert self.router.matches("user.created", pattern)

    def test_list_never_matches_directly(self):
        """IdentifierList is expanded before storage and never matched."""
        assert not self.router.matches("a", IdentifierList((ExactName("a"),)))


# ============================================================================
# LISTENER RECORD TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestListenerRecord:
    """Test the Listener record factory."""

    def test_create_derives_label(self):
        """The label names the callback and the identifier."""

        def on_created(event):
            return None

        listener = Listener.create(
            ExactName("user.created"), on_created, order=0, limit=None, registry=None
        )

        assert listener.label.endswith("on_created@user.created")
        assert listener.remaining is None
        assert not listener.is_bounded

    def test_invoke_passes_event_then_args(self, mocker):
        """The callback receives the event followed by emit arguments."""
        callback = mocker.Mock(return_value="done")
        listener = Listener.create(ExactName("a"), callback, order=0, limit=2, registry=None)
        event = object()

        result = listener.invoke(event, (1, 2))

        assert result == "done"
        callback.assert_called_once_with(event, 1, 2)
        assert listener.is_bounded
