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

__all__ = ("ScalarValue", "ValueKind")

import enum
from collections.abc import Sequence
from typing import Any, TypeAlias

import numpy as np
import numpy.typing as npt

from ._errors import TypeMismatchError

ScalarValue: TypeAlias = bool | int | float | str | bytes


class ValueKind(enum.StrEnum):
    """Enumeration of the scalar value kinds a `PropertySet` can hold.

    Every name in a `PropertySet` or `PropertyList` holds an array of values
    of exactly one of these kinds.
    """

    bool = enum.auto()
    uint8 = enum.auto()
    uint16 = enum.auto()
    uint32 = enum.auto()
    uint64 = enum.auto()
    int8 = enum.auto()
    int16 = enum.auto()
    int32 = enum.auto()
    int64 = enum.auto()
    float32 = enum.auto()
    float64 = enum.auto()
    string = enum.auto()
    bytes = enum.auto()

    def to_numpy(self) -> type:
        """Convert an enumeration member to the corresponding numpy scalar
        type object.

        Returns
        -------
        scalar_type
            Numpy scalar type, e.g. `numpy.int16`.  `string` maps to
            `numpy.str_` and `bytes` to `numpy.bytes_`.
        """
        match self:
            case ValueKind.string:
                return np.str_
            case ValueKind.bytes:
                return np.bytes_
        return getattr(np, self.value)

    @classmethod
    def from_numpy(cls, dtype: npt.DTypeLike) -> ValueKind:
        """Construct an enumeration member from anything that can be coerced
        to `numpy.dtype`.

        Parameters
        ----------
        dtype
            Object convertible to `numpy.dtype`.

        Returns
        -------
        member
            Enumeration member.

        Raises
        ------
        TypeMismatchError
            Raised if the data type does not correspond to a supported kind.
        """
        dtype = np.dtype(dtype)
        match dtype.kind:
            case "U":
                return cls.string
            case "S":
                return cls.bytes
        try:
            return cls(dtype.name)
        except ValueError:
            raise TypeMismatchError(f"Data type {dtype} is not a supported value kind.") from None

    @classmethod
    def from_value(cls, value: Any) -> ValueKind:
        """Infer the kind of a single scalar value.

        Python integers are given the narrowest of ``int32``, ``int64`` and
        ``uint64`` that can hold them, and Python floats are ``float64``.
        Numpy scalars keep their own data type.

        Raises
        ------
        TypeMismatchError
            Raised if the value is not of a supported kind.
        """
        if isinstance(value, bool | np.bool_):
            return cls.bool
        if isinstance(value, np.generic):
            return cls.from_numpy(value.dtype)
        if isinstance(value, int):
            return cls._for_integers(value, value)
        if isinstance(value, float):
            return cls.float64
        if isinstance(value, str):
            return cls.string
        if isinstance(value, bytes | bytearray):
            return cls.bytes
        raise TypeMismatchError(f"Values of type {type(value).__name__} are not supported.")

    @classmethod
    def from_values(cls, values: Sequence[Any] | np.ndarray) -> ValueKind:
        """Infer the common kind of a sequence of scalar values.

        Integer kinds widen to the narrowest of ``int32``, ``int64`` and
        ``uint64`` that holds every element, and mixed floating-point kinds
        widen to ``float64``.

        Raises
        ------
        TypeMismatchError
            Raised if the sequence is empty, or its elements cannot share a
            single kind.
        """
        if isinstance(values, np.ndarray):
            return cls.from_numpy(values.dtype)
        if len(values) == 0:
            raise TypeMismatchError("Cannot infer the kind of an empty sequence.")
        kinds = {cls.from_value(v) for v in values}
        if len(kinds) == 1:
            return kinds.pop()
        if all(k.is_integer for k in kinds):
            integers = [int(v) for v in values]
            return cls._for_integers(min(integers), max(integers))
        if all(k.is_float for k in kinds):
            return cls.float64
        raise TypeMismatchError(f"Sequence mixes values of kinds {sorted(kinds)}.")

    @classmethod
    def _for_integers(cls, low: int, high: int) -> ValueKind:
        for candidate in (cls.int32, cls.int64, cls.uint64):
            info = np.iinfo(candidate.to_numpy())
            if info.min <= low and high <= info.max:
                return candidate
        raise TypeMismatchError(f"Integers in [{low}, {high}] do not fit in any supported kind.")

    @property
    def is_integer(self) -> bool:
        """Whether this kind holds signed or unsigned integers."""
        return np.dtype(self.to_numpy()).kind in "iu"

    @property
    def is_float(self) -> bool:
        """Whether this kind holds floating-point numbers."""
        return np.dtype(self.to_numpy()).kind == "f"

    def coerce(self, value: Any) -> ScalarValue:
        """Convert a value to the plain Python scalar stored for this kind.

        Parameters
        ----------
        value
            Python or numpy scalar.

        Returns
        -------
        scalar
            `bool`, `int`, `float`, `str` or `bytes`.  Single-precision values
            are rounded to single precision.

        Raises
        ------
        TypeMismatchError
            Raised if the value is of another category (e.g. a `float` for an
            integer kind), or an integer is out of range for this kind.
        """
        if self is ValueKind.bool:
            if isinstance(value, bool | np.bool_):
                return bool(value)
        elif self is ValueKind.string:
            if isinstance(value, str):
                return str(value)
        elif self is ValueKind.bytes:
            if isinstance(value, bytes | bytearray):
                return bytes(value)
        elif self.is_integer:
            if isinstance(value, int | np.integer) and not isinstance(value, bool):
                info = np.iinfo(self.to_numpy())
                if info.min <= value <= info.max:
                    return int(value)
                raise TypeMismatchError(f"Integer {value} is out of range for {self}.")
        elif isinstance(value, float | np.floating):
            return float(self.to_numpy()(value))
        raise TypeMismatchError(f"Value {value!r} of type {type(value).__name__} cannot be stored as {self}.")

    def matches(self, requested: ValueKind | type) -> bool:
        """Test whether values of this kind satisfy a requested type.

        Parameters
        ----------
        requested
            Either a `ValueKind` or numpy scalar type, which must match
            exactly, or one of the Python types `bool`, `int`, `float`,
            `str` and `bytes`, which match any kind of the same category.

        Raises
        ------
        TypeMismatchError
            Raised if ``requested`` does not name a supported kind.
        """
        if isinstance(requested, ValueKind):
            return requested is self
        if isinstance(requested, type) and issubclass(requested, np.generic):
            return ValueKind.from_numpy(requested) is self
        if requested is bool:
            return self is ValueKind.bool
        if requested is int:
            return self.is_integer
        if requested is float:
            return self.is_float
        if requested is str:
            return self is ValueKind.string
        if requested is bytes:
            return self is ValueKind.bytes
        raise TypeMismatchError(f"{requested!r} is not a supported value type.")

    def format_value(self, value: ScalarValue) -> str:
        """Format a single value of this kind for diagnostic output."""
        if self is ValueKind.string:
            return f'"{value}"'
        if self is ValueKind.bytes:
            return f"<{len(value)} bytes>"  # type: ignore[arg-type]
        return repr(value)
