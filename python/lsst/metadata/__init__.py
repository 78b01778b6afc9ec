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

"""Containers for hierarchical, typed metadata, such as FITS headers.

`PropertySet` maps dotted-path names to arrays of typed values.
`PropertyList` adds insertion order and per-name comments, making it suitable
for round-tripping FITS headers (see `lsst.metadata.fits`).
"""

from ._errors import *
from ._kinds import *
from ._property_list import *
from ._property_set import *
from ._serialization import *
