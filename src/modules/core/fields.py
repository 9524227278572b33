"""Strict enum persistence.

``StrictChoiceField`` stores a ``TextChoices`` member as its raw string
value and decodes it back into the member on every read.  Decoding is
total: an unknown stored value raises ``InvalidArgument`` instead of
falling back to a default, so corrupted rows surface at load time.
"""

from __future__ import annotations

from typing import Any, Optional, Type

from django.db import models

from modules.core.exceptions import InvalidArgument


def decode_choice(enum_cls: Type[models.TextChoices], value: Any) -> models.TextChoices:
    """Return the ``enum_cls`` member whose value is *value*.

    Accepts members and case-insensitive strings.  Raises
    ``InvalidArgument`` for anything else.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for member in enum_cls:
            if member.value.lower() == normalized:
                return member
    raise InvalidArgument(f"Unknown {enum_cls.__name__} value: {value!r}.")


class StrictChoiceField(models.CharField):
    """CharField bound to a closed ``TextChoices`` type."""

    def __init__(
        self,
        *args: Any,
        enum: Optional[Type[models.TextChoices]] = None,
        **kwargs: Any,
    ) -> None:
        if enum is None:
            raise TypeError("StrictChoiceField requires an 'enum' argument.")
        self.enum = enum
        kwargs.setdefault("max_length", 20)
        kwargs.setdefault("choices", enum.choices)
        super().__init__(*args, **kwargs)

    def deconstruct(self):
        name, path, args, kwargs = super().deconstruct()
        kwargs["enum"] = self.enum
        return name, path, args, kwargs

    def from_db_value(self, value, expression, connection):
        if value is None:
            return value
        return decode_choice(self.enum, value)

    def to_python(self, value):
        if value is None or value == "":
            return value
        return decode_choice(self.enum, value)

    def get_prep_value(self, value):
        if value is None:
            return value
        return decode_choice(self.enum, value).value
