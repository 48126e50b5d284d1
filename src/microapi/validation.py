"""
Request validation helpers.

    class NewUser(Validatable):
        def __init__(self, body):
            self.name = body.get("name")

        def validate(self):
            if not self.name:
                raise ValidationError("name must not be empty")

    def create_user(request):
        try:
            require_fields(request.body, "name", "email")
            DefaultValidator().validate(NewUser(request.body))
        except ValidationError as e:
            return bad_request(e.message)
        ...
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping


class ValidationError(Exception):
    """A value failed validation. ``message`` is safe to show to clients."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class Validatable(ABC):
    """Something that can check its own invariants."""

    @abstractmethod
    def validate(self) -> None:
        """Raise ValidationError if invalid."""


class DefaultValidator:
    """Validates Validatable values by asking them to validate themselves."""

    def validate(self, value: Validatable) -> None:
        if not isinstance(value, Validatable):
            raise TypeError(f"{type(value).__name__} is not Validatable")
        value.validate()


def require_fields(body: Mapping[str, Any], *names: str) -> None:
    """
    Check that every named field is present and not null.

    Raises:
        ValidationError: Naming all missing fields, in the order given
    """
    missing = [name for name in names if body.get(name) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
