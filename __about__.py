# -*- coding: utf-8 -*-
# Strata: Layered substrates for surface-integral electromagnetics.
#
# Copyright (c) 2026 opticsWolf
#
# SPDX-License-Identifier: LGPL-3.0-or-later

"""
Project metadata for Strata.
"""

from typing import Final

# Metadata Definitions
__title__: Final[str] = "Strata"
__description__: Final[str] = (
    "Planar multilayer substrate descriptions, parsing and per-frequency "
    "material caching for layered-media Green's function solvers."
)
__version__: Final[str] = "0.1.0"
__author__: Final[str] = "opticsWolf"
__license__: Final[str] = "LGPL-3.0-or-later"
__copyright__: Final[str] = "Copyright (c) 2026 opticsWolf"

def metadata_summary() -> dict[str, str]:
    """Returns the project metadata as a dictionary."""
    return {
        "title": __title__,
        "version": __version__,
        "author": __author__,
        "license": __license__,
        "description": __description__,
    }
