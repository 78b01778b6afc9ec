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

__all__ = ("PropertySet",)

import dataclasses
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any, TypeAlias

import numpy as np

from ._errors import NotFoundError, TypeMismatchError
from ._kinds import ScalarValue, ValueKind
from ._serialization import PropertyListModel

if TYPE_CHECKING:
    from ._property_list import PropertyList

_Container: TypeAlias = "PropertySet | PropertyList"

# A flattened entry ready to be written: full name, values, and comment.
_Item: TypeAlias = "tuple[str, _Entry, str | None]"

_NO_DEFAULT: Any = object()


@dataclasses.dataclass
class _Entry:
    """The kind and values stored for a single name."""

    kind: ValueKind
    values: list[ScalarValue]

    @classmethod
    def from_value(cls, value: Any, kind: ValueKind | None = None) -> _Entry:
        """Construct from a scalar or a sequence of scalars, inferring the
        kind if it is not given.
        """
        if isinstance(value, np.ndarray) and value.ndim == 0:
            value = value[()]
        if isinstance(value, np.ndarray | list | tuple):
            if isinstance(value, np.ndarray):
                if value.ndim != 1:
                    raise TypeMismatchError(f"Only 1-d arrays can be stored; got shape {value.shape}.")
                items = value.tolist()
            else:
                items = list(value)
            if not items:
                raise TypeMismatchError("Cannot store an empty sequence.")
            if kind is None:
                kind = ValueKind.from_values(value)
            return cls(kind, [kind.coerce(v) for v in items])
        if kind is None:
            kind = ValueKind.from_value(value)
        return cls(kind, [kind.coerce(value)])

    def copy(self) -> _Entry:
        return _Entry(self.kind, list(self.values))

    def coerced(self, kind: ValueKind) -> _Entry:
        if kind is self.kind:
            return self.copy()
        return _Entry(kind, [kind.coerce(v) for v in self.values])

    def format(self) -> str:
        if len(self.values) == 1:
            return self.kind.format_value(self.values[0])
        return "[ " + ", ".join(self.kind.format_value(v) for v in self.values) + " ]"


def _is_container(value: object) -> bool:
    from ._property_list import PropertyList

    return isinstance(value, PropertySet | PropertyList)


def _is_valid_name(name: object) -> bool:
    return isinstance(name, str) and "" not in name.split(".")


def _check_name(name: object) -> None:
    if not isinstance(name, str):
        raise TypeMismatchError(f"Names must be strings; got {name!r}.")
    if "" in name.split("."):
        raise ValueError(f"Names and their dot-separated components must not be empty; got {name!r}.")


def _check_kind(name: str, entry: _Entry, kind: ValueKind | type | None) -> None:
    if kind is not None and not entry.kind.matches(kind):
        raise TypeMismatchError(f"{name!r} holds {entry.kind} values, not {kind!r}.")


def _check_subtree_kind(name: str, kind: ValueKind | type | None) -> None:
    if kind is not None:
        raise TypeMismatchError(f"{name!r} holds nested values, not {kind!r}.")


def _make_entry(name: str, value: Any, kind: ValueKind | None) -> _Entry:
    try:
        return _Entry.from_value(value, kind)
    except TypeMismatchError as err:
        raise TypeMismatchError(f"Invalid value for {name!r}: {err}") from err


def _flatten(prefix: str | None, source: _Container) -> list[_Item]:
    """Copy the entries of a container, prepending ``prefix.`` to each name.

    Entries are returned in the container's own iteration order.
    """
    if prefix is None:
        return [(name, entry.copy(), comment) for name, entry, comment in source._iter_entries()]
    return [(f"{prefix}.{name}", entry.copy(), comment) for name, entry, comment in source._iter_entries()]


class PropertySet:
    """A hierarchical collection of named, typed values.

    Notes
    -----
    Names are dotted paths (e.g. ``"a.b.c"``); every name holds an array of
    one or more values of a single `ValueKind`.  Each full name is stored as
    its own entry; the hierarchy (`property_set_names`, `get_property_set`)
    is derived from the dotted names.

    Setting or adding a `PropertySet` or `PropertyList` as a value flattens
    it: each of its names is prefixed with the target name and stored as an
    independent entry.  No nested container is ever retained.

    `PropertySet` makes no guarantees about the order of its names beyond
    being deterministic; use `PropertyList` when order and comments matter.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    def get(self, name: str, default: Any = _NO_DEFAULT, *, kind: ValueKind | type | None = None) -> Any:
        """Return the (last) value stored for a name.

        Parameters
        ----------
        name
            Full dotted name.
        default, optional
            Value to return if ``name`` does not exist.
        kind, optional
            If not `None`, the kind that the stored values must have: a
            `ValueKind` or numpy scalar type must match exactly, while the
            Python types `bool`, `int`, `float`, `str` and `bytes` match any
            kind of the same category.

        Returns
        -------
        value
            The last value stored for ``name``.  If ``name`` is not itself an
            entry but other names are nested below it, a new `PropertySet`
            holding that subtree is returned instead.

        Raises
        ------
        NotFoundError
            Raised if ``name`` does not exist and no default was given.
        TypeMismatchError
            Raised if the stored kind does not match ``kind``, even if a
            default was given.
        """
        _check_name(name)
        entry = self._entries.get(name)
        if entry is None:
            if self._children(name):
                _check_subtree_kind(name, kind)
                return self.get_property_set(name)
            if default is not _NO_DEFAULT:
                return default
            raise NotFoundError(f"Name {name!r} not found.")
        _check_kind(name, entry, kind)
        return entry.values[-1]

    def get_array(self, name: str, *, kind: ValueKind | type | None = None) -> list[Any]:
        """Return all values stored for a name.

        A name holding a single value yields a one-element list.  See `get`
        for the meaning of ``kind`` and the exceptions raised.
        """
        _check_name(name)
        entry = self._entries.get(name)
        if entry is None:
            raise NotFoundError(f"Name {name!r} not found.")
        _check_kind(name, entry, kind)
        return list(entry.values)

    def get_property_set(self, name: str) -> PropertySet:
        """Return a copy of all entries nested below a name, with the
        ``name.`` prefix removed.

        Raises
        ------
        NotFoundError
            Raised if no names are nested below ``name``.
        """
        _check_name(name)
        prefix = name + "."
        result = PropertySet()
        for full_name in self._children(name):
            result._entries[full_name.removeprefix(prefix)] = self._entries[full_name].copy()
        if not result._entries:
            raise NotFoundError(f"No names are nested below {name!r}.")
        return result

    def type_of(self, name: str) -> ValueKind:
        """Return the kind of the values stored for a name."""
        _check_name(name)
        entry = self._entries.get(name)
        if entry is None:
            raise NotFoundError(f"Name {name!r} not found.")
        return entry.kind

    def is_array(self, name: str) -> bool:
        """Test whether a name holds more than one value."""
        _check_name(name)
        entry = self._entries.get(name)
        return entry is not None and len(entry.values) > 1

    def value_count(self, name: str | None = None) -> int:
        """Return the number of values stored for a name, or for all names
        if ``name`` is `None`.
        """
        if name is None:
            return sum(len(entry.values) for entry in self._entries.values())
        _check_name(name)
        entry = self._entries.get(name)
        if entry is None:
            raise NotFoundError(f"Name {name!r} not found.")
        return len(entry.values)

    def exists(self, name: str) -> bool:
        """Test whether a name holds values or has names nested below it."""
        _check_name(name)
        return name in self._entries or bool(self._children(name))

    def param_names(self, top_level_only: bool = True) -> list[str]:
        """Return the names that hold values.

        Parameters
        ----------
        top_level_only, optional
            If `True`, only include names with no ``.`` separator.
        """
        if top_level_only:
            return [name for name in self._entries if "." not in name]
        return list(self._entries)

    def property_set_names(self, top_level_only: bool = True) -> list[str]:
        """Return the names that have other names nested below them.

        Parameters
        ----------
        top_level_only, optional
            If `True`, only include names with no ``.`` separator.
        """
        result: dict[str, None] = {}
        for name in self._entries:
            parts = name.split(".")
            stop = min(2 if top_level_only else len(parts), len(parts))
            for n in range(1, stop):
                result.setdefault(".".join(parts[:n]))
        return list(result)

    def names(self, top_level_only: bool = True) -> list[str]:
        """Return the union of `param_names` and `property_set_names`."""
        if top_level_only:
            return list(dict.fromkeys(name.split(".")[0] for name in self._entries))
        result = dict.fromkeys(self.param_names(False))
        result.update(dict.fromkeys(self.property_set_names(False)))
        return list(result)

    def name_count(self, top_level_only: bool = True) -> int:
        """Return the number of names, as returned by `names`."""
        return len(self.names(top_level_only))

    def to_dict(self) -> dict[str, Any]:
        """Return a flat `dict` mapping each full name to its value, or to a
        `list` of values for names that hold more than one.
        """
        return {
            name: entry.values[0] if len(entry.values) == 1 else list(entry.values)
            for name, entry, _ in self._iter_entries()
        }

    def set(self, name: str, value: Any, *, kind: ValueKind | None = None) -> None:
        """Replace the values stored for a name.

        Parameters
        ----------
        name
            Full dotted name.
        value
            A scalar, a sequence (`list`, `tuple` or 1-d `numpy.ndarray`) of
            scalars of one kind, or a `PropertySet` or `PropertyList`.  A
            container is flattened: ``name`` and every name nested below it
            that the container does not provide are removed, and each of the
            container's names is set below ``name``.
        kind, optional
            Kind to store the values as, instead of inferring it.

        Raises
        ------
        TypeMismatchError
            Raised if the value is not of a supported kind, or cannot be
            converted to ``kind``.
        """
        stale, items = self._plan_set(name, value, kind)
        self._delete(stale)
        for item_name, entry, _ in items:
            self._put(item_name, entry)

    def add(self, name: str, value: Any, *, kind: ValueKind | None = None) -> None:
        """Append values to those stored for a name, creating it if
        necessary.

        Parameters
        ----------
        name
            Full dotted name.
        value
            As in `set`.  A container's names are each added below ``name``.
        kind, optional
            Kind to store the values as; must match the existing kind if
            ``name`` already exists.

        Raises
        ------
        TypeMismatchError
            Raised if the new values cannot be converted to the existing kind.
            Nothing is modified in this case.
        """
        for item_name, entry, _ in self._plan_add(name, value, kind):
            self._extend(item_name, entry)

    def remove(self, name: str) -> None:
        """Remove a name and all names nested below it.

        Removing a name that does not exist does nothing.
        """
        self._discard(name)

    def combine(self, source: _Container) -> None:
        """Add all entries of another container to this one.

        Names already present accumulate the new values (as with `add`);
        new names are created.

        Raises
        ------
        TypeMismatchError
            Raised if any entry's values cannot be converted to the kind
            already stored for its name.  Nothing is modified in this case.
        """
        for item_name, entry, _ in self._plan_merge(_flatten(None, source)):
            self._extend(item_name, entry)

    def copy(self, dest: str, source: _Container, name: str, *, as_scalar: bool = False) -> None:
        """Replace the values at ``dest`` with those stored at ``name`` in
        another container.

        Parameters
        ----------
        dest
            Name to copy to.
        source
            Container to copy from; may be ``self``.
        name
            Name to copy.  If it is not an entry but has names nested below
            it, the whole subtree is copied as if by `set`.
        as_scalar, optional
            If `True`, only copy the last value of each entry.

        Raises
        ------
        NotFoundError
            Raised if ``name`` does not exist in ``source``.
        """
        stale, items = self._plan_copy(dest, source, name, as_scalar)
        self._delete(stale)
        for item_name, entry, _ in items:
            self._put(item_name, entry)

    def deep_copy(self) -> PropertySet:
        """Return a copy that shares no state with this one."""
        result = PropertySet()
        result._entries = {name: entry.copy() for name, entry in self._entries.items()}
        return result

    def to_string(self, top_level_only: bool = False, indent: str = "") -> str:
        """Format the contents for debugging.

        Parameters
        ----------
        top_level_only, optional
            If `True`, summarize nested names as ``name = { ... }`` instead of
            expanding them.
        indent, optional
            String to prepend to every line.

        Notes
        -----
        The format is not stable and should not be parsed.
        """
        lines: list[str] = []
        for name in self.names(top_level_only=True):
            if (entry := self._entries.get(name)) is not None:
                lines.append(f"{indent}{name} = {entry.format()}")
            if self._children(name):
                if top_level_only:
                    lines.append(f"{indent}{name} = {{ ... }}")
                else:
                    lines.append(f"{indent}{name} = {{")
                    lines.append(self.get_property_set(name).to_string(indent=indent + "    "))
                    lines.append(f"{indent}}}")
        return "\n".join(lines)

    def serialize(self) -> PropertyListModel:
        """Return a Pydantic model holding the contents."""
        return PropertyListModel.pack(
            (name, entry.kind, entry.values, comment) for name, entry, comment in self._iter_entries()
        )

    @classmethod
    def deserialize(cls, model: PropertyListModel) -> PropertySet:
        """Construct from the Pydantic model returned by `serialize`.

        Comments in the model are ignored.
        """
        result = cls()
        for entry in model.entries:
            result.add(entry.name, entry.values, kind=entry.kind)
        return result

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __contains__(self, name: object) -> bool:
        return _is_valid_name(name) and self.exists(name)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        if not self._discard(name):
            raise NotFoundError(f"Name {name!r} not found.")

    def __eq__(self, other: object) -> bool:
        if type(other) is PropertySet:
            return self._entries == other._entries
        return NotImplemented

    def __deepcopy__(self, memo: dict[int, Any]) -> PropertySet:
        return self.deep_copy()

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"PropertySet({self.to_dict()!r})"

    # The methods below are shared with PropertyList, which holds a
    # PropertySet and performs its order and comment bookkeeping around them.
    # The _plan_* methods validate and convert everything before anything is
    # modified, so a failed write leaves the container unchanged.

    def _iter_entries(self) -> Iterator[tuple[str, _Entry, str | None]]:
        for name, entry in self._entries.items():
            yield name, entry, None

    def _get_entry(self, name: str) -> _Entry | None:
        return self._entries.get(name)

    def _has_leaf(self, name: str) -> bool:
        return name in self._entries

    def _children(self, name: str) -> list[str]:
        prefix = name + "."
        return [n for n in self._entries if n.startswith(prefix)]

    def _subtree_names(self, name: str) -> list[str]:
        prefix = name + "."
        return [n for n in self._entries if n == name or n.startswith(prefix)]

    def _put(self, name: str, entry: _Entry) -> bool:
        is_new = name not in self._entries
        self._entries[name] = entry
        return is_new

    def _extend(self, name: str, entry: _Entry) -> bool:
        existing = self._entries.get(name)
        if existing is None:
            self._entries[name] = entry
            return True
        existing.values.extend(entry.values)
        return False

    def _delete(self, names: Iterable[str]) -> None:
        for name in names:
            del self._entries[name]

    def _discard(self, name: str) -> list[str]:
        _check_name(name)
        removed = self._subtree_names(name)
        self._delete(removed)
        return removed

    def _plan_replace(self, name: str, items: list[_Item]) -> tuple[list[str], list[_Item]]:
        keep = {item_name for item_name, _, _ in items}
        return [n for n in self._subtree_names(name) if n not in keep], items

    def _plan_set(self, name: str, value: Any, kind: ValueKind | None) -> tuple[list[str], list[_Item]]:
        _check_name(name)
        if not _is_container(value):
            return [], [(name, _make_entry(name, value, kind), None)]
        if kind is not None:
            raise TypeMismatchError(f"No kind may be given when setting a container as {name!r}.")
        return self._plan_replace(name, _flatten(name, value))

    def _plan_add(self, name: str, value: Any, kind: ValueKind | None) -> list[_Item]:
        _check_name(name)
        if _is_container(value):
            if kind is not None:
                raise TypeMismatchError(f"No kind may be given when adding a container as {name!r}.")
            return self._plan_merge(_flatten(name, value))
        existing = self._entries.get(name)
        if existing is not None:
            if kind is not None and kind is not existing.kind:
                raise TypeMismatchError(f"{name!r} holds {existing.kind} values, not {kind}.")
            kind = existing.kind
        return [(name, _make_entry(name, value, kind), None)]

    def _plan_merge(self, items: list[_Item]) -> list[_Item]:
        planned: list[_Item] = []
        for item_name, entry, comment in items:
            existing = self._entries.get(item_name)
            if existing is not None and existing.kind is not entry.kind:
                try:
                    entry = entry.coerced(existing.kind)
                except TypeMismatchError as err:
                    raise TypeMismatchError(
                        f"Cannot add {entry.kind} values to {item_name!r}, which holds {existing.kind}: {err}"
                    ) from err
            planned.append((item_name, entry, comment))
        return planned

    def _plan_copy(
        self, dest: str, source: _Container, name: str, as_scalar: bool
    ) -> tuple[list[str], list[_Item]]:
        _check_name(dest)
        _check_name(name)
        if (leaf := source._get_entry(name)) is not None:
            entry = _Entry(leaf.kind, leaf.values[-1:]) if as_scalar else leaf.copy()
            return [], [(dest, entry, None)]
        prefix = name + "."
        items: list[_Item] = []
        for full_name, entry, _ in source._iter_entries():
            if full_name.startswith(prefix):
                copied = _Entry(entry.kind, entry.values[-1:]) if as_scalar else entry.copy()
                items.append((f"{dest}.{full_name.removeprefix(prefix)}", copied, None))
        if not items:
            raise NotFoundError(f"Name {name!r} not found.")
        return self._plan_replace(dest, items)
