"""
Unit tests for Container and the validation helpers.
"""

import pytest

from microapi import Container, DefaultValidator, Validatable, ValidationError, require_fields


class Clock:
    pass


class TestContainer:

    def test_resolve_missing_is_none(self):
        """Test resolving an unregistered key."""
        assert Container().resolve(Clock) is None

    def test_factory_runs_per_resolve(self):
        """Test that each resolve calls the factory."""
        container = Container()
        container.register(Clock, Clock)

        first = container.resolve(Clock)
        second = container.resolve(Clock)

        assert isinstance(first, Clock)
        assert first is not second

    def test_register_instance_is_shared(self):
        """Test that a registered instance is shared."""
        container = Container()
        clock = Clock()
        container.register_instance(Clock, clock)

        assert container.resolve(Clock) is clock
        assert container.resolve(Clock) is clock

    def test_string_keys_and_replacement(self):
        """Test string keys and re-registration."""
        container = Container()
        container.register("answer", lambda: 41)
        container.register("answer", lambda: 42)

        assert container.resolve("answer") == 42
        assert "answer" in container
        assert len(container) == 1

    def test_factory_must_be_callable(self):
        """Test registering a non-callable factory."""
        with pytest.raises(TypeError):
            Container().register("x", 42)


class Positive(Validatable):
    def __init__(self, n):
        self.n = n

    def validate(self):
        if self.n <= 0:
            raise ValidationError("n must be positive")


class TestValidation:

    def test_valid_value(self):
        """Test validating a valid value."""
        DefaultValidator().validate(Positive(1))

    def test_invalid_value(self):
        """Test the error raised for an invalid value."""
        with pytest.raises(ValidationError) as exc_info:
            DefaultValidator().validate(Positive(0))
        assert exc_info.value.message == "n must be positive"
        assert str(exc_info.value) == "n must be positive"

    def test_not_validatable(self):
        """Test validating an object without validate()."""
        with pytest.raises(TypeError):
            DefaultValidator().validate(object())

    def test_require_fields(self):
        """Test required field checks."""
        require_fields({"a": 1, "b": ""}, "a", "b")

        with pytest.raises(ValidationError, match="Missing required fields: a, c"):
            require_fields({"a": None, "b": 2}, "a", "b", "c")
