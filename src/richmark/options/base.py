#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/richmark/options/base.py
"""Base class for richmark option dataclasses.

Option objects are frozen. A changed setting is a modified copy made with
:meth:`CloneFrozenMixin.create_updated`, which runs ``__post_init__`` again so
copies are validated exactly like new instances.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, fields, replace
from typing import Any, Iterable

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self


@dataclass(frozen=True)
class CloneFrozenMixin:
    """Copy-on-write helpers and field checks shared by option dataclasses."""

    def create_updated(self, **kwargs: Any) -> Self:
        """Return a copy with the given fields replaced.

        Raises
        ------
        ValueError
            If the resulting values fail validation.
        TypeError
            If a keyword does not name a field.

        """
        return replace(self, **kwargs)

    @classmethod
    def field_help(cls) -> dict[str, str]:
        """Return the ``help`` metadata of every field, keyed by field name."""
        return {f.name: f.metadata.get("help", "") for f in fields(cls)}  # type: ignore[arg-type]

    def _require_positive(self, name: str, allow_zero: bool = False) -> None:
        value = getattr(self, name)
        if value < 0 or (value == 0 and not allow_zero):
            qualifier = "non-negative" if allow_zero else "positive"
            raise ValueError(f"{name} must be {qualifier}, got {value}")

    def _require_choice(self, name: str, choices: Iterable[str]) -> None:
        value = getattr(self, name)
        allowed = tuple(choices)
        if value not in allowed:
            listed = ", ".join(repr(c) for c in allowed)
            raise ValueError(f"{name} must be one of {listed}, got {value!r}")
