# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: library.py - Name-keyed material registry.

Resolution order for ``lookup(name)`` (names are case-insensitive):
  1. materials registered on the library;
  2. built-in reference media (VACUUM, AIR);
  3. inline constants ``CONST_EPS_<eps>`` and ``CONST_EPS_<eps>_MU_<mu>``,
     where the values are Python float or complex literals
     (``CONST_EPS_11.7``, ``CONST_EPS_10+1j_MU_2``; a trailing ``i`` is
     accepted for the imaginary unit).
"""

import re
from typing import Dict, Iterator, Mapping, Optional

from .basic import Konstant
from .material import Material, MaterialLookupError

__all__ = ["MaterialLibrary", "parse_constant_material"]

_CONST_RE = re.compile(r"^CONST_EPS_(?P<eps>.+?)(?:_MU_(?P<mu>.+))?$", re.IGNORECASE)


def _parse_number(text: str) -> complex:
    text = text.strip()
    if text[-1:] in ("i", "I"):
        text = text[:-1] + "j"
    return complex(text)


def parse_constant_material(name: str) -> Optional[Konstant]:
    """
    Build a Konstant from an inline ``CONST_EPS_...`` name.

    Returns None if *name* is not an inline constant.

    Raises:
        MaterialLookupError: If the name has the inline form but the
            values do not parse or are zero.
    """
    match = _CONST_RE.match(name)
    if match is None:
        return None
    try:
        eps = _parse_number(match.group("eps"))
        mu = _parse_number(match.group("mu")) if match.group("mu") else 1.0
        return Konstant(eps=eps, mu=mu, name=name)
    except ValueError as exc:
        raise MaterialLookupError(f"invalid constant material {name}: {exc}") from None


class MaterialLibrary:
    """
    Registry mapping material names to Material instances.

    Satisfies the ``MaterialLookup`` protocol consumed by the substrate
    parser. Registered instances are shared between all layers that name
    them; inline constants get a fresh Konstant per lookup.

    Parameters
    ----------
    materials : Mapping[str, Material], optional
        Initial registrations.
    builtins : bool
        Register VACUUM and AIR (default True).
    """
    __slots__ = ("_materials",)

    def __init__(
        self,
        materials: Optional[Mapping[str, Material]] = None,
        builtins: bool = True,
    ) -> None:
        self._materials: Dict[str, Material] = {}
        if builtins:
            self.register("VACUUM", Konstant(eps=1.0, mu=1.0, name="VACUUM"))
            self.register("AIR", Konstant(eps=1.0, mu=1.0, name="AIR"))
        for name, material in (materials or {}).items():
            self.register(name, material)

    def register(self, name: str, material: Material) -> None:
        if not name or name.split() != [name]:
            raise ValueError(f"Material names must be single non-empty tokens, got {name!r}")
        if not hasattr(material, "eps_mu"):
            raise TypeError(
                f"Material '{name}' must provide eps_mu(omega), got {type(material).__name__}"
            )
        self._materials[name.upper()] = material

    def lookup(self, name: str) -> Material:
        material = self._materials.get(name.upper())
        if material is not None:
            return material
        material = parse_constant_material(name)
        if material is not None:
            return material
        raise MaterialLookupError(f"unknown material {name}")

    def contains(self, name: str) -> bool:
        if name.upper() in self._materials:
            return True
        try:
            return parse_constant_material(name) is not None
        except MaterialLookupError:
            return False

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.contains(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._materials)

    def __len__(self) -> int:
        return len(self._materials)

    def __repr__(self) -> str:
        return f"MaterialLibrary(materials={sorted(self._materials)})"
