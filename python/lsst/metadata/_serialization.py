# This file is part of lsst-metadata.
#
# Developed for the LSST Data Management System.
# This product includes software developed by the LSST Project
# (https://www.lsst.org).
# See the COPYRIGHT file at the top-level directory of this distribution
# for details of code ownership.
#
# Use of this source code is governed by a 3-clause BSD-style
# license that can be found in the LICENSE file.

from __future__ import annotations

__all__ = ("PropertyEntryModel", "PropertyListModel")

import base64
from collections.abc import Iterable
from typing import Annotated, Any, Self

import pydantic

from ._kinds import ScalarValue, ValueKind


class PropertyEntryModel(pydantic.BaseModel, ser_json_inf_nan="constants"):
    """Pydantic model for a single named entry of a `PropertyList` or
    `PropertySet`.
    """

    name: str
    """Full dotted name of the entry."""

    kind: ValueKind
    """Kind shared by all of the values."""

    # Using Annotated here instead of ' = Field(...)' keeps type checkers from
    # generating the wrong __init__ signature.
    values: Annotated[list[Any], pydantic.Field(min_length=1)]
    """Values stored for the name.

    Bytes values are base64-encoded strings in JSON.
    """

    comment: str | None = None
    """Comment associated with the entry, if any."""

    @pydantic.model_validator(mode="after")
    def _decode_bytes(self) -> Self:
        if self.kind is ValueKind.bytes:
            self.values = [base64.b64decode(v) if isinstance(v, str) else v for v in self.values]
        return self

    @pydantic.field_serializer("values", when_used="json")
    def _encode_bytes(self, values: list[Any]) -> list[Any]:
        if self.kind is ValueKind.bytes:
            return [base64.b64encode(v).decode("ascii") for v in values]
        return values


class PropertyListModel(pydantic.BaseModel, ser_json_inf_nan="constants"):
    """Pydantic model used to represent the serialized form of a
    `PropertyList` or `PropertySet`.

    The order of `entries` is the order of the names in a `PropertyList`.
    """

    entries: list[PropertyEntryModel] = pydantic.Field(default_factory=list)

    @classmethod
    def pack(cls, entries: Iterable[tuple[str, ValueKind, list[ScalarValue], str | None]]) -> PropertyListModel:
        """Construct a model from ``(name, kind, values, comment)`` tuples
        without validating them.
        """
        return cls.model_construct(
            entries=[
                PropertyEntryModel.model_construct(name=name, kind=kind, values=list(values), comment=comment)
                for name, kind, values, comment in entries
            ]
        )
