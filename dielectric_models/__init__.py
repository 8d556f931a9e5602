# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Frequency-dependent (eps, mu) material models and the name-keyed library
used to resolve layer materials.
"""

from .material import Material, MaterialLookupError
from .basic import Konstant, TableMaterial
from .drudelorentz import Drude, DrudeLorentz
from .library import MaterialLibrary, parse_constant_material

__all__ = [
    "Material",
    "MaterialLookupError",
    "Konstant",
    "TableMaterial",
    "Drude",
    "DrudeLorentz",
    "MaterialLibrary",
    "parse_constant_material",
]
