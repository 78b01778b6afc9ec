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

__all__ = ("PropertyList",)

from collections.abc import Iterable, Iterator
from typing import Any

from ._errors import NotFoundError
from ._kinds import ValueKind
from ._property_set import (
    _NO_DEFAULT,
    PropertySet,
    _check_name,
    _check_subtree_kind,
    _Container,
    _Entry,
    _flatten,
    _is_container,
    _is_valid_name,
    _Item,
)
from ._serialization import PropertyListModel


class PropertyList:
    """An ordered collection of named, typed values with optional comments.

    Notes
    -----
    `PropertyList` stores values like `PropertySet` (which it holds
    internally), but also remembers the order in which names were first
    inserted and an optional comment for each name.  The main motivating use
    case is FITS headers.

    By default, replacing the values of an existing name does not change its
    position, and a comment is only ever replaced by another explicitly
    provided comment; omitting the comment never clears it.

    `PropertyList` is not truly hierarchical, although it accepts dotted
    paths as names.  If a `PropertySet` or `PropertyList` is set or added as
    a value, its names are flattened into this list (in its own order, for a
    `PropertyList`), with comments carried along.

    Iterating over a `PropertyList` yields its names in order.  The iterator
    is a live view: the list must not be modified while iterating over it.
    """

    def __init__(self) -> None:
        self._store = PropertySet()
        self._order: list[str] = []
        self._comments: dict[str, str] = {}

    def get(self, name: str, default: Any = _NO_DEFAULT, *, kind: ValueKind | type | None = None) -> Any:
        """Return the (last) value stored for a name.

        See `PropertySet.get`; a name with only nested names below it returns
        a `PropertyList` holding that subtree.
        """
        _check_name(name)
        if not self._store._has_leaf(name) and self._store._children(name):
            _check_subtree_kind(name, kind)
            return self.get_property_list(name)
        return self._store.get(name, default, kind=kind)

    def get_array(self, name: str, *, kind: ValueKind | type | None = None) -> list[Any]:
        """Return all values stored for a name (see `PropertySet.get_array`)."""
        return self._store.get_array(name, kind=kind)

    def get_comment(self, name: str) -> str:
        """Return the comment for a name, or an empty string if it has none.

        Raises
        ------
        NotFoundError
            Raised if ``name`` does not hold any values.
        """
        _check_name(name)
        if not self._store._has_leaf(name):
            raise NotFoundError(f"Name {name!r} not found.")
        return self._comments.get(name, "")

    def get_ordered_names(self) -> list[str]:
        """Return all names, in order."""
        return list(self._order)

    def get_property_list(self, name: str) -> PropertyList:
        """Return a copy of all entries nested below a name, with the
        ``name.`` prefix removed and order and comments preserved.

        Raises
        ------
        NotFoundError
            Raised if no names are nested below ``name``.
        """
        _check_name(name)
        prefix = name + "."
        result = PropertyList()
        for full_name, entry, comment in self._iter_entries():
            if full_name.startswith(prefix):
                result._set_entry(full_name.removeprefix(prefix), entry.copy(), comment, in_place=True)
        if not result._order:
            raise NotFoundError(f"No names are nested below {name!r}.")
        return result

    def type_of(self, name: str) -> ValueKind:
        """Return the kind of the values stored for a name."""
        return self._store.type_of(name)

    def is_array(self, name: str) -> bool:
        """Test whether a name holds more than one value."""
        return self._store.is_array(name)

    def value_count(self, name: str | None = None) -> int:
        """Return the number of values stored for a name, or for all names
        if ``name`` is `None`.
        """
        return self._store.value_count(name)

    def exists(self, name: str) -> bool:
        """Test whether a name holds values or has names nested below it."""
        return self._store.exists(name)

    def names(self, top_level_only: bool = True) -> list[str]:
        """Return the union of `param_names` and `property_set_names`, in
        list order.

        Nested group names are placed at the position of the first name
        below them.
        """
        return self._reorder(self._store.names(top_level_only))

    def param_names(self, top_level_only: bool = True) -> list[str]:
        """Return the names that hold values, in list order."""
        return self._reorder(self._store.param_names(top_level_only))

    def property_set_names(self, top_level_only: bool = True) -> list[str]:
        """Return the names that have other names nested below them, in
        order of the first name below each.
        """
        return self._reorder(self._store.property_set_names(top_level_only))

    def name_count(self, top_level_only: bool = True) -> int:
        """Return the number of names, as returned by `names`."""
        return self._store.name_count(top_level_only)

    def to_dict(self) -> dict[str, Any]:
        """Return a flat `dict` mapping each name, in order, to its value, or
        to a `list` of values for names that hold more than one.
        """
        return {
            name: entry.values[0] if len(entry.values) == 1 else list(entry.values)
            for name, entry, _ in self._iter_entries()
        }

    def set(
        self,
        name: str,
        value: Any,
        comment: str | None = None,
        *,
        kind: ValueKind | None = None,
        in_place: bool = True,
    ) -> None:
        """Replace the values stored for a name.

        Parameters
        ----------
        name
            Full dotted name.
        value
            Scalar, sequence of scalars, or container; see `PropertySet.set`.
        comment, optional
            Comment to record for ``name``, replacing any existing one.  If
            `None`, an existing comment is kept.  May not be given if
            ``value`` is a container, since its entries carry their own
            comments.
        kind, optional
            Kind to store the values as, instead of inferring it.
        in_place, optional
            If `True` (default), a name that already exists keeps its
            position.  If `False`, it is moved to the end.

        Raises
        ------
        TypeMismatchError
            Raised if the value is not of a supported kind, or cannot be
            converted to ``kind``.
        """
        if comment is not None and _is_container(value):
            raise ValueError(f"A comment cannot be given when setting a container as {name!r}.")
        stale, items = self._store._plan_set(name, value, kind)
        self._replace(stale, items, comment, in_place)

    def add(self, name: str, value: Any, comment: str | None = None, *, kind: ValueKind | None = None) -> None:
        """Append values to those stored for a name, creating it (at the end
        of the list) if necessary.

        Parameters
        ----------
        name
            Full dotted name.
        value
            Scalar, sequence of scalars, or container; see `PropertySet.add`.
        comment, optional
            Comment to record for ``name``, replacing any existing one.  If
            `None`, an existing comment is kept.  May not be given if
            ``value`` is a container.
        kind, optional
            Kind to store the values as; must match the existing kind if
            ``name`` already exists.

        Raises
        ------
        TypeMismatchError
            Raised if the new values cannot be converted to the existing kind.
            Nothing is modified in this case.
        """
        if comment is not None and _is_container(value):
            raise ValueError(f"A comment cannot be given when adding a container as {name!r}.")
        for item_name, entry, item_comment in self._store._plan_add(name, value, kind):
            self._add_entry(item_name, entry, comment if comment is not None else item_comment)

    def remove(self, name: str) -> None:
        """Remove a name and all names nested below it, along with their
        comments.

        Removing a name that does not exist does nothing.
        """
        self._forget(self._store._discard(name))

    def combine(self, source: _Container) -> None:
        """Add all entries of another container to this one.

        Names already present accumulate the new values and keep their
        position; new names are appended in the order of ``source`` (which is
        arbitrary but deterministic for a `PropertySet`).  Comments recorded
        in ``source`` replace ours.

        Raises
        ------
        TypeMismatchError
            Raised if any entry's values cannot be converted to the kind
            already stored for its name.  Nothing is modified in this case.
        """
        for item_name, entry, comment in self._store._plan_merge(_flatten(None, source)):
            self._add_entry(item_name, entry, comment)

    def copy(self, dest: str, source: _Container, name: str, *, as_scalar: bool = False) -> None:
        """Replace the values at ``dest`` with those stored at ``name`` in
        another container.

        Comments are not copied; an existing comment for ``dest`` is kept.
        See `PropertySet.copy` for details.
        """
        stale, items = self._store._plan_copy(dest, source, name, as_scalar)
        self._replace(stale, items, None, in_place=True)

    def deep_copy(self) -> PropertyList:
        """Return a copy that shares no state with this one."""
        result = PropertyList()
        result._store = self._store.deep_copy()
        result._order = list(self._order)
        result._comments = dict(self._comments)
        return result

    def to_string(self, top_level_only: bool = False, indent: str = "") -> str:
        """Format the contents for debugging, one line per name, in order.

        Parameters
        ----------
        top_level_only, optional
            If `True`, omit names that contain a ``.`` separator.
        indent, optional
            String to prepend to every line.

        Notes
        -----
        The format is not stable and should not be parsed; use
        `serialize` or `.fits.to_fits_header` instead.
        """
        lines: list[str] = []
        for name, entry, comment in self._iter_entries():
            if top_level_only and "." in name:
                continue
            line = f"{indent}{name} = {entry.format()}"
            if comment:
                line = f"{line} // {comment}"
            lines.append(line)
        return "\n".join(lines)

    def serialize(self) -> PropertyListModel:
        """Return a Pydantic model holding the contents, in order."""
        return PropertyListModel.pack(
            (name, entry.kind, entry.values, comment) for name, entry, comment in self._iter_entries()
        )

    @classmethod
    def deserialize(cls, model: PropertyListModel) -> PropertyList:
        """Construct from the Pydantic model returned by `serialize`."""
        result = cls()
        for entry in model.entries:
            result.add(entry.name, entry.values, entry.comment, kind=entry.kind)
        return result

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __contains__(self, name: object) -> bool:
        return _is_valid_name(name) and self.exists(name)

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        if not self.exists(name):
            raise NotFoundError(f"Name {name!r} not found.")
        self.remove(name)

    def __eq__(self, other: object) -> bool:
        if type(other) is PropertyList:
            return (
                self._order == other._order
                and self._store == other._store
                and self._comments == other._comments
            )
        return NotImplemented

    def __deepcopy__(self, memo: dict[int, Any]) -> PropertyList:
        return self.deep_copy()

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"PropertyList({self.to_dict()!r})"

    def _iter_entries(self) -> Iterator[tuple[str, _Entry, str | None]]:
        for name in self._order:
            yield name, self._store._entries[name], self._comments.get(name)

    def _get_entry(self, name: str) -> _Entry | None:
        return self._store._get_entry(name)

    def _reorder(self, names: list[str]) -> list[str]:
        # Sort names derived from the underlying PropertySet by the position
        # of the first entry they cover.
        position: dict[str, int] = {}
        for n, full_name in enumerate(self._order):
            parts = full_name.split(".")
            for i in range(1, len(parts) + 1):
                position.setdefault(".".join(parts[:i]), n)
        return sorted(names, key=position.__getitem__)

    def _replace(self, stale: list[str], items: list[_Item], comment: str | None, in_place: bool) -> None:
        self._store._delete(stale)
        self._forget(stale)
        for item_name, entry, item_comment in items:
            self._set_entry(item_name, entry, comment if comment is not None else item_comment, in_place)

    def _set_entry(self, name: str, entry: _Entry, comment: str | None, in_place: bool) -> None:
        if self._store._put(name, entry):
            self._record_new_key(name)
        elif not in_place:
            self._move_to_end(name)
        if comment is not None:
            self._set_comment(name, comment)

    def _add_entry(self, name: str, entry: _Entry, comment: str | None) -> None:
        if self._store._extend(name, entry):
            self._record_new_key(name)
        if comment is not None:
            self._set_comment(name, comment)

    def _forget(self, names: Iterable[str]) -> None:
        removed = set(names)
        if removed:
            self._order[:] = [name for name in self._order if name not in removed]
            for name in removed:
                self._comments.pop(name, None)

    def _record_new_key(self, name: str) -> None:
        self._order.append(name)

    def _move_to_end(self, name: str) -> None:
        self._order.remove(name)
        self._order.append(name)

    def _set_comment(self, name: str, comment: str) -> None:
        # Comments may only be recorded for names that are already in the
        # order list.
        if not self._store._has_leaf(name):
            raise AssertionError(f"Comment recorded for {name!r}, which holds no values.")
        self._comments[name] = comment
