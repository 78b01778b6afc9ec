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

import copy
import unittest

import numpy as np

from lsst.metadata import NotFoundError, PropertySet, TypeMismatchError, ValueKind


class PropertySetTestCase(unittest.TestCase):
    """Tests for PropertySet."""

    def test_scalars(self) -> None:
        """Test setting and getting single values of each kind."""
        ps = PropertySet()
        ps.set("int", 5)
        ps.set("float", 1.5)
        ps.set("str", "hello")
        ps.set("bool", False)
        ps.set("blob", b"\x00\x01")
        self.assertEqual(ps.get("int"), 5)
        self.assertEqual(ps.get("float"), 1.5)
        self.assertEqual(ps.get("str"), "hello")
        self.assertIs(ps.get("bool"), False)
        self.assertEqual(ps.get("blob"), b"\x00\x01")
        self.assertEqual(ps.type_of("int"), ValueKind.int32)
        self.assertEqual(ps.type_of("float"), ValueKind.float64)
        self.assertEqual(ps.type_of("blob"), ValueKind.bytes)
        self.assertEqual(ps.get("int", kind=int), 5)
        self.assertEqual(ps.get("int", kind=ValueKind.int32), 5)
        self.assertEqual(ps.get_array("int", kind=int), [5])
        self.assertEqual(len(ps), 5)
        with self.assertRaises(TypeMismatchError):
            ps.get("int", kind=str)
        with self.assertRaises(TypeMismatchError):
            ps.get("int", kind=ValueKind.int64)
        with self.assertRaises(NotFoundError):
            ps.get("missing")
        with self.assertRaises(NotFoundError):
            ps.get_array("missing")
        with self.assertRaises(NotFoundError):
            ps.type_of("missing")
        self.assertEqual(ps.get("missing", 3), 3)
        self.assertIsNone(ps.get("missing", None))
        # A default does not suppress a type mismatch for a name that exists.
        with self.assertRaises(TypeMismatchError):
            ps.get("int", "fallback", kind=str)

    def test_explicit_kind(self) -> None:
        """Test storing values with an explicit kind."""
        ps = PropertySet()
        ps.set("short", 7, kind=ValueKind.int16)
        self.assertEqual(ps.type_of("short"), ValueKind.int16)
        ps.set("single", 0.1, kind=ValueKind.float32)
        self.assertEqual(ps.get("single"), float(np.float32(0.1)))
        ps.set("numpy", np.int16(4))
        self.assertEqual(ps.type_of("numpy"), ValueKind.int16)
        with self.assertRaises(TypeMismatchError):
            ps.set("byte", 300, kind=ValueKind.uint8)
        self.assertFalse(ps.exists("byte"))
        with self.assertRaises(TypeMismatchError):
            ps.set("bad", None)
        with self.assertRaises(TypeMismatchError):
            ps.set(5, 1)  # type: ignore[arg-type]
        with self.assertRaises(ValueError):
            ps.set("", 1)

    def test_arrays(self) -> None:
        """Test setting sequences of values."""
        ps = PropertySet()
        ps.set("a", [1, 2, 3])
        self.assertEqual(ps.get("a"), 3)
        self.assertEqual(ps.get_array("a"), [1, 2, 3])
        self.assertTrue(ps.is_array("a"))
        self.assertEqual(ps.value_count("a"), 3)
        ps.set("a", 4)
        self.assertEqual(ps.get_array("a"), [4])
        self.assertFalse(ps.is_array("a"))
        self.assertFalse(ps.is_array("missing"))
        ps.set("np", np.array([1.0, 2.0], dtype=np.float32))
        self.assertEqual(ps.type_of("np"), ValueKind.float32)
        self.assertEqual(ps.get_array("np"), [1.0, 2.0])
        ps.set("zero_d", np.array(3))
        self.assertEqual(ps.get("zero_d"), 3)
        self.assertEqual(ps.value_count(), 4)
        for bad in ([1, "x"], [], (), np.zeros((2, 2))):
            with self.assertRaises(TypeMismatchError):
                ps.set("bad", bad)
        self.assertFalse(ps.exists("bad"))

    def test_add(self) -> None:
        """Test appending values, including type checks."""
        ps = PropertySet()
        ps.add("a", 1)
        ps.add("a", 2)
        ps.add("a", [3, 4])
        self.assertEqual(ps.get_array("a"), [1, 2, 3, 4])
        ps.add("big", 2**40)
        ps.add("big", 1)
        self.assertEqual(ps.type_of("big"), ValueKind.int64)
        self.assertEqual(ps.get_array("big"), [2**40, 1])
        ps.add("short", np.int16(1))
        ps.add("short", 2)
        self.assertEqual(ps.type_of("short"), ValueKind.int16)
        for bad in ("x", 1.5, 2**40, [5, "y"]):
            with self.assertRaises(TypeMismatchError):
                ps.add("a", bad)
        with self.assertRaises(TypeMismatchError):
            ps.add("a", 5, kind=ValueKind.int64)
        self.assertEqual(ps.get_array("a"), [1, 2, 3, 4])

    def test_hierarchy(self) -> None:
        """Test the hierarchical view of dotted names."""
        ps = PropertySet()
        ps.set("a.b.c", 1)
        ps.set("a.b.d", 2)
        ps.set("a.e", "x")
        ps.set("f", 3.0)
        self.assertEqual(ps.names(), ["a", "f"])
        self.assertEqual(ps.names(top_level_only=False), ["a.b.c", "a.b.d", "a.e", "f", "a", "a.b"])
        self.assertEqual(ps.param_names(), ["f"])
        self.assertEqual(ps.param_names(top_level_only=False), ["a.b.c", "a.b.d", "a.e", "f"])
        self.assertEqual(ps.property_set_names(), ["a"])
        self.assertEqual(ps.property_set_names(top_level_only=False), ["a", "a.b"])
        self.assertEqual(ps.name_count(), 2)
        self.assertTrue(ps.exists("a.b"))
        self.assertIn("a.b.c", ps)
        self.assertNotIn("a.x", ps)
        self.assertNotIn(5, ps)
        sub = ps.get_property_set("a")
        self.assertEqual(sub.param_names(top_level_only=False), ["b.c", "b.d", "e"])
        self.assertEqual(sub.get("b.c"), 1)
        self.assertEqual(ps.get("a"), sub)
        self.assertEqual(ps["a.b"].get("d"), 2)
        with self.assertRaises(TypeMismatchError):
            ps.get("a", kind=int)
        with self.assertRaises(NotFoundError):
            ps.get_property_set("f")
        sub.set("e", "y")
        self.assertEqual(ps.get("a.e"), "x")
        ps.remove("a.b")
        self.assertEqual(ps.param_names(top_level_only=False), ["a.e", "f"])
        self.assertEqual(len(ps), 2)

    def test_set_container(self) -> None:
        """Test that setting a container flattens it and replaces the old
        subtree.
        """
        child = PropertySet()
        child.set("x", 1)
        child.set("y.z", "s")
        ps = PropertySet()
        ps.set("root", 0)
        ps.set("root.old", 5)
        ps.set("root.x", 9)
        ps.set("other", 1.0)
        ps.set("root", child)
        self.assertEqual(ps.param_names(top_level_only=False), ["root.x", "other", "root.y.z"])
        self.assertEqual(ps.get("root.x"), 1)
        self.assertEqual(ps.get("root.y.z"), "s")
        child.set("x", 2)
        self.assertEqual(ps.get("root.x"), 1)
        with self.assertRaises(TypeMismatchError):
            ps.set("r2", child, kind=ValueKind.int32)

    def test_add_container(self) -> None:
        """Test that adding a container is all-or-nothing."""
        ps = PropertySet()
        ps.set("root.x", 1)
        child = PropertySet()
        child.set("x", 2)
        child.set("w", "a")
        ps.add("root", child)
        self.assertEqual(ps.get_array("root.x"), [1, 2])
        self.assertEqual(ps.get_array("root.w"), ["a"])
        bad = PropertySet()
        bad.set("w", "b")
        bad.set("x", "s")
        with self.assertRaises(TypeMismatchError):
            ps.add("root", bad)
        self.assertEqual(ps.get_array("root.x"), [1, 2])
        self.assertEqual(ps.get_array("root.w"), ["a"])

    def test_combine(self) -> None:
        """Test merging one PropertySet into another."""
        a = PropertySet()
        a.set("x", 1)
        a.set("s", "a")
        b = PropertySet()
        b.set("x", [2, 3])
        b.set("t", True)
        a.combine(b)
        self.assertEqual(a.get_array("x"), [1, 2, 3])
        self.assertEqual(a.get("s"), "a")
        self.assertIs(a.get("t"), True)
        a.combine(a)
        self.assertEqual(a.get_array("x"), [1, 2, 3, 1, 2, 3])
        c = PropertySet()
        c.set("x", 4)
        c.set("s", 5)
        snapshot = a.deep_copy()
        with self.assertRaises(TypeMismatchError):
            a.combine(c)
        self.assertEqual(a, snapshot)

    def test_remove(self) -> None:
        """Test removing names."""
        ps = PropertySet()
        ps.set("x", 1)
        ps.set("y", 2)
        ps.remove("missing")
        self.assertEqual(ps.param_names(), ["x", "y"])
        ps.remove("x")
        self.assertFalse(ps.exists("x"))
        del ps["y"]
        self.assertEqual(len(ps), 0)
        with self.assertRaises(NotFoundError):
            del ps["y"]

    def test_copy(self) -> None:
        """Test copying single entries and subtrees between containers."""
        src = PropertySet()
        src.set("a", [1, 2])
        src.set("b.c", "x")
        src.set("b.d", 2.5)
        ps = PropertySet()
        ps.copy("dest", src, "a")
        self.assertEqual(ps.get_array("dest"), [1, 2])
        ps.copy("one", src, "a", as_scalar=True)
        self.assertEqual(ps.get_array("one"), [2])
        ps.copy("tree", src, "b")
        self.assertEqual(ps.get("tree.c"), "x")
        self.assertEqual(ps.get("tree.d"), 2.5)
        ps.copy("dest2", ps, "dest")
        self.assertEqual(ps.get_array("dest2"), [1, 2])
        src.add("a", 3)
        self.assertEqual(ps.get_array("dest"), [1, 2])
        with self.assertRaises(NotFoundError):
            ps.copy("z", src, "missing")

    def test_deep_copy(self) -> None:
        """Test that deep copies are independent."""
        ps = PropertySet()
        ps.set("a", [1, 2])
        ps.set("b.c", "x")
        cp = ps.deep_copy()
        self.assertEqual(cp, ps)
        cp.add("a", 9)
        cp.set("new", 1.0)
        self.assertEqual(ps.get_array("a"), [1, 2])
        self.assertFalse(ps.exists("new"))
        self.assertNotEqual(cp, ps)
        self.assertEqual(copy.deepcopy(ps), ps)
        empty = PropertySet().deep_copy()
        self.assertEqual(len(empty), 0)
        self.assertEqual(empty, PropertySet())

    def test_to_string(self) -> None:
        """Test the diagnostic string form."""
        ps = PropertySet()
        ps.set("a.b", 1)
        ps.set("c", "x")
        ps.add("d", [1.5, 2.5])
        self.assertEqual(ps.to_string(), 'a = {\n    b = 1\n}\nc = "x"\nd = [ 1.5, 2.5 ]')
        self.assertEqual(ps.to_string(top_level_only=True), 'a = { ... }\nc = "x"\nd = [ 1.5, 2.5 ]')
        self.assertEqual(ps.to_string(indent="  ").split("\n")[0], "  a = {")
        self.assertEqual(str(ps), ps.to_string())
        self.assertEqual(PropertySet().to_string(), "")

    def test_to_dict(self) -> None:
        """Test conversion to a flat dict."""
        ps = PropertySet()
        ps.set("a.b", 1)
        ps.set("c", "x")
        ps.add("d", [1.5, 2.5])
        self.assertEqual(ps.to_dict(), {"a.b": 1, "c": "x", "d": [1.5, 2.5]})
        self.assertEqual(list(ps), ["a.b", "c", "d"])
        ps["e"] = True
        self.assertIs(ps["e"], True)

    def test_invalid_names(self) -> None:
        """Test that malformed names are rejected by reads and writes."""
        ps = PropertySet()
        ps.set("a.b", 1)
        for method in (ps.get, ps.get_array, ps.get_property_set, ps.type_of, ps.is_array, ps.exists):
            with self.assertRaises(TypeMismatchError):
                method(5)  # type: ignore[arg-type]
        with self.assertRaises(TypeMismatchError):
            ps.value_count(5)  # type: ignore[arg-type]
        with self.assertRaises(TypeMismatchError):
            ps.remove(5)  # type: ignore[arg-type]
        with self.assertRaises(TypeMismatchError):
            del ps[5]  # type: ignore[arg-type]
        for bad in ("", "a.", ".a", "a..b"):
            with self.assertRaises(ValueError):
                ps.set(bad, 1)
            with self.assertRaises(ValueError):
                ps.add(bad, 1)
            with self.assertRaises(ValueError):
                ps.get(bad)
            with self.assertRaises(ValueError):
                ps.copy(bad, ps, "a.b")
            self.assertNotIn(bad, ps)
        self.assertEqual(ps.param_names(top_level_only=False), ["a.b"])
        self.assertEqual(ps.get_property_set("a").param_names(), ["b"])


if __name__ == "__main__":
    unittest.main()
