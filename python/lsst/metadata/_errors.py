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

__all__ = ("NotFoundError", "TypeMismatchError")


class NotFoundError(LookupError):
    """Exception raised when a name is not present in a `PropertySet` or
    `PropertyList`.
    """


class TypeMismatchError(TypeError):
    """Exception raised when a value's kind does not match the kind already
    stored (or requested) for a name, or when a value is not of any supported
    kind.
    """
