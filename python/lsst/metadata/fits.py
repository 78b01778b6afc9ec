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

"""Conversions between `PropertyList` and FITS headers.

Each value becomes one header card, so names holding arrays become repeated
cards with the same keyword, and each card carries the comment of its name.
Names that are not valid standard FITS keywords (at most eight upper-case
letters, digits, ``-`` and ``_``) are written as ``HIERARCH`` cards, with
``.`` separators replaced by spaces.  Reading reverses all of this: repeated
keywords accumulate into arrays and ``HIERARCH`` keywords regain their ``.``
separators.
"""

from __future__ import annotations

__all__ = (
    "FitsHeaderOptions",
    "HeaderSource",
    "from_fits_header",
    "read_fits_header",
    "to_fits_header",
    "write_fits_header",
)

import dataclasses
import io
import os
import re
from logging import getLogger
from typing import Any, ClassVar, Protocol

import astropy.io.fits
import fsspec

from ._kinds import ValueKind
from ._property_list import PropertyList

_LOG = getLogger(__name__)

_STANDARD_KEYWORD_RE = re.compile(r"[A-Z0-9_-]{1,8}")


class HeaderSource(Protocol):
    """Interface for the read-only view of ordered metadata consumed when
    writing FITS headers.

    `PropertyList` satisfies this interface.
    """

    def get_ordered_names(self) -> list[str]: ...

    def get_array(self, name: str) -> list[Any]: ...

    def get_comment(self, name: str) -> str: ...

    def type_of(self, name: str) -> ValueKind: ...


@dataclasses.dataclass(frozen=True)
class FitsHeaderOptions:
    """Configuration options for converting between `PropertyList` and FITS
    headers.
    """

    hierarch_separator: str = " "
    """String that replaces ``.`` in the keywords of ``HIERARCH`` cards (and
    is replaced by ``.`` when reading them).
    """

    strip: bool = True
    """Whether to drop structural keywords (``SIMPLE``, ``BITPIX``,
    ``NAXISn``, etc.) when reading a header.
    """

    commentary_keywords: frozenset[str] = frozenset({"COMMENT", "HISTORY"})
    """Keywords whose cards hold free text instead of a value and comment."""

    DEFAULT: ClassVar[FitsHeaderOptions]
    """Default options."""


FitsHeaderOptions.DEFAULT = FitsHeaderOptions()


def _to_keyword(name: str, options: FitsHeaderOptions) -> str:
    if _STANDARD_KEYWORD_RE.fullmatch(name):
        return name
    return f"HIERARCH {name.replace('.', options.hierarch_separator)}"


def to_fits_header(
    source: HeaderSource, options: FitsHeaderOptions = FitsHeaderOptions.DEFAULT
) -> astropy.io.fits.Header:
    """Convert ordered metadata to a FITS header.

    Parameters
    ----------
    source
        Metadata to convert, usually a `PropertyList`.
    options, optional
        Conversion options.

    Returns
    -------
    `astropy.io.fits.Header`
        A new header with one card per value, in order.

    Notes
    -----
    Names holding `ValueKind.bytes` values, or values that FITS does not
    allow (non-finite floats, non-ASCII strings or comments), cannot be
    represented and are skipped with a warning.
    """
    header = astropy.io.fits.Header()
    for name in source.get_ordered_names():
        if source.type_of(name) is ValueKind.bytes:
            _LOG.warning("Skipping %r: binary values cannot be written to a FITS header.", name)
            continue
        keyword = _to_keyword(name, options)
        comment = source.get_comment(name)
        try:
            if name in options.commentary_keywords:
                cards = [astropy.io.fits.Card(keyword, value) for value in source.get_array(name)]
            else:
                cards = [astropy.io.fits.Card(keyword, value, comment) for value in source.get_array(name)]
        except ValueError as err:
            _LOG.warning("Skipping %r: %s", name, err)
            continue
        for card in cards:
            header.append(card, end=True)
    return header


def from_fits_header(
    header: astropy.io.fits.Header, options: FitsHeaderOptions = FitsHeaderOptions.DEFAULT
) -> PropertyList:
    """Convert a FITS header to a `PropertyList`.

    Parameters
    ----------
    header
        Header to convert.  It is not modified.
    options, optional
        Conversion options.

    Returns
    -------
    `PropertyList`
        A new list with one name per distinct keyword, in order of first
        appearance.

    Raises
    ------
    TypeMismatchError
        Raised if a repeated keyword has values of different kinds.

    Notes
    -----
    Blank cards are ignored.  Cards with undefined or complex values cannot be
    represented and are skipped with a warning.  Empty comments are not
    recorded.
    """
    if options.strip:
        header = header.copy(strip=True)
    result = PropertyList()
    for card in header.cards:
        keyword = card.keyword
        if not keyword:
            continue
        if _STANDARD_KEYWORD_RE.fullmatch(keyword):
            name = keyword
        else:
            name = keyword.replace(options.hierarch_separator, ".")
        value = card.value
        if keyword in options.commentary_keywords:
            result.add(name, str(value))
            continue
        if isinstance(value, astropy.io.fits.card.Undefined | complex):
            _LOG.warning("Skipping FITS card %r: value %r cannot be represented.", keyword, value)
            continue
        result.add(name, value, card.comment or None)
    return result


def write_fits_header(
    source: HeaderSource,
    path: str | os.PathLike[str],
    options: FitsHeaderOptions = FitsHeaderOptions.DEFAULT,
) -> None:
    """Write ordered metadata to the primary header of a new, data-less FITS
    file.

    Parameters
    ----------
    source
        Metadata to write, usually a `PropertyList`.
    path
        Local path or URI of the file; anything `fsspec.open` accepts.
    options, optional
        Conversion options.
    """
    hdu = astropy.io.fits.PrimaryHDU()
    hdu.header.extend(to_fits_header(source, options), end=True)
    buffer = io.BytesIO()
    astropy.io.fits.HDUList([hdu]).writeto(buffer)
    _LOG.debug("Writing %d header cards to %s.", len(hdu.header), path)
    with fsspec.open(path, "wb") as stream:
        stream.write(buffer.getvalue())


def read_fits_header(
    path: str | os.PathLike[str],
    hdu: int | str = 0,
    options: FitsHeaderOptions = FitsHeaderOptions.DEFAULT,
) -> PropertyList:
    """Read a header from a FITS file into a `PropertyList`.

    Parameters
    ----------
    path
        Local path or URI of the file; anything `fsspec.open` accepts.
    hdu, optional
        Index or ``EXTNAME`` of the HDU whose header should be read.
    options, optional
        Conversion options.

    Returns
    -------
    `PropertyList`
        The converted header.
    """
    with fsspec.open(path, "rb") as stream:
        data = stream.read()
    with astropy.io.fits.open(io.BytesIO(data)) as hdu_list:
        header = hdu_list[hdu].header.copy()
    return from_fits_header(header, options)
