# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: strata_stack.py - Planar layer stack, material lookup adapters and
the per-frequency material response cache.

Design notes:
  1.  MaterialLookup protocol decouples name resolution from a specific
      container. MaterialLibrary (dielectric_models) and DictMaterialLookup
      both satisfy it; wrap_material_source() picks the right adapter.
  2.  LayerStack is immutable. Layers are appended through
      LayerStackBuilder, which validates every insert (top-to-bottom,
      strictly decreasing interface depths) and the ground-plane position
      on build().
  3.  Layer i spans zInterface[i] < z <= zInterface[i-1]; layer 0 is
      unbounded above and the last layer is unbounded below (or bounded by
      the ground plane). A depth equal to an interface belongs to the layer
      below it.
  4.  MaterialResponseCache holds one (eps, mu) per layer for the most
      recently requested frequency. omega and -omega share one entry.
"""

from __future__ import annotations

import cmath
import math
import threading
from typing import (
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

import numpy as np
from numba import njit

from dielectric_models import Konstant, MaterialLibrary, MaterialLookupError

# ═══════════════════════════════════════════════════════════════════════════════
# Standardised numeric types (Numba-friendly)
# ═══════════════════════════════════════════════════════════════════════════════
FLOAT_TYPE = np.float64
COMPLEX_TYPE = np.complex128
INT_TYPE = np.int32

NO_GROUND_PLANE: float = -math.inf
DEFAULT_TOP_MEDIUM: str = "VACUUM"
OMEGA_RTOL: float = 1e-12


# ═══════════════════════════════════════════════════════════════════════════════
# 1.  Errors and warnings
# ═══════════════════════════════════════════════════════════════════════════════
class SubstrateError(ValueError):
    """
    Base class for substrate construction failures.

    ``str(err)`` is the full diagnostic, prefixed ``<source>:<line>: `` when
    the location is known; ``reason`` holds the bare message.
    """

    def __init__(
        self,
        reason: str,
        source: Optional[str] = None,
        line: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.source = source
        self.line = line
        super().__init__(self._format())

    def _format(self) -> str:
        if self.source and self.line is not None:
            return f"{self.source}:{self.line}: {self.reason}"
        if self.source:
            return f"{self.source}: {self.reason}"
        return self.reason

    def with_location(self, source: Optional[str], line: Optional[int]) -> "SubstrateError":
        """Return a copy of this error (same class) carrying *source*/*line*."""
        return type(self)(self.reason, source, line)


class SubstrateFileError(SubstrateError):
    """Substrate file missing or unreadable."""


class SubstrateSyntaxError(SubstrateError):
    """Wrong token count or unparseable depth."""


class SubstrateOrderError(SubstrateError):
    """Interface order, ground-plane position or keyword placement violated."""


class SubstrateMaterialError(SubstrateError):
    """Material lookup failed while building a layer."""


class SubstrateStructureError(SubstrateError):
    """Section terminator missing."""


class SubstrateWarning(UserWarning):
    """Non-fatal substrate diagnostics."""


# ═══════════════════════════════════════════════════════════════════════════════
# 2.  MaterialLookup: pluggable material-data source
# ═══════════════════════════════════════════════════════════════════════════════
@runtime_checkable
class MaterialHandle(Protocol):
    """Anything that yields relative (eps, mu) at a complex frequency."""
    def eps_mu(self, omega: complex) -> Tuple[complex, complex]: ...


@runtime_checkable
class MaterialLookup(Protocol):
    """
    Minimal interface a material name resolver must satisfy.

    lookup(name) → MaterialHandle, or raises MaterialLookupError
    contains(name) → bool
    """
    def lookup(self, material_name: str) -> MaterialHandle: ...
    def contains(self, material_name: str) -> bool: ...


class DictMaterialLookup:
    """
    Adapter for a plain ``{name: material}`` dict.

    Values may be MaterialHandle objects or bare numbers, which are taken
    as constant permittivities (``{"SiO2": 3.9}``). Names are matched
    case-insensitively, as in the substrate grammar.
    """
    __slots__ = ("_dict",)

    def __init__(self, mat_dict: Mapping[str, Any]) -> None:
        self._dict: Dict[str, MaterialHandle] = {}
        for name, value in mat_dict.items():
            if isinstance(value, (int, float, complex, np.number)):
                value = Konstant(eps=value, name=name)
            elif not isinstance(value, MaterialHandle):
                raise TypeError(
                    f"DictMaterialLookup: material '{name}' has no eps_mu() "
                    f"(got {type(value).__name__})."
                )
            self._dict[name.upper()] = value

    def lookup(self, material_name: str) -> MaterialHandle:
        try:
            return self._dict[material_name.upper()]
        except KeyError:
            raise MaterialLookupError(f"unknown material {material_name}") from None

    def contains(self, material_name: str) -> bool:
        return material_name.upper() in self._dict


def wrap_material_source(source: Any = None) -> MaterialLookup:
    """
    Convenience factory: auto-detect and wrap a material data source.

    Accepts:
      - None (a default MaterialLibrary with the built-in media)
      - An existing MaterialLookup (returned as-is)
      - A dict (wrapped in DictMaterialLookup)
    """
    if source is None:
        return MaterialLibrary()
    if isinstance(source, MaterialLookup):
        return source
    if isinstance(source, Mapping):
        return DictMaterialLookup(source)
    raise TypeError(
        f"wrap_material_source: unsupported type {type(source).__name__}"
    )


# ═══════════════════════════════════════════════════════════════════════════════
# 3.  Layer
# ═══════════════════════════════════════════════════════════════════════════════
class Layer:
    """
    One layer of the stack: a material over the depth range
    ``z_lower < z <= z_upper`` (layer 0 also includes z_upper = +inf).
    """
    __slots__ = ("material_name", "material", "z_lower", "z_upper")

    def __init__(
        self,
        material_name: str,
        material: MaterialHandle,
        z_lower: float = -math.inf,
        z_upper: float = math.inf,
    ) -> None:
        self.material_name = material_name
        self.material = material
        self.z_lower = float(z_lower)
        self.z_upper = float(z_upper)

    @property
    def thickness(self) -> float:
        """Layer thickness (math.inf for semi-infinite layers)."""
        return self.z_upper - self.z_lower

    @property
    def semi_infinite(self) -> bool:
        return math.isinf(self.thickness)

    def contains(self, z: float) -> bool:
        return self.z_lower < z <= self.z_upper

    def get_state(self) -> Dict[str, Any]:
        return {
            "material": self.material_name,
            "z_lower": self.z_lower,
            "z_upper": self.z_upper,
        }

    def __repr__(self) -> str:
        return (
            f"Layer(mat='{self.material_name}', "
            f"z=({self.z_lower:g}, {self.z_upper:g}])"
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 4.  LayerStack
# ═══════════════════════════════════════════════════════════════════════════════
@njit(cache=True)
def _locate_layers(z: np.ndarray, interfaces: np.ndarray) -> np.ndarray:
    n_if = interfaces.shape[0]
    out = np.empty(z.shape[0], dtype=np.int32)
    for k in range(z.shape[0]):
        idx = n_if
        for i in range(n_if):
            if z[k] > interfaces[i]:
                idx = i
                break
        out[k] = idx
    return out


class LayerStack:
    """
    Immutable, validated sequence of planar layers.

    Parameters
    ----------
    material_names : sequence of str
        One name per layer, top (incident half-space) first.
    materials : sequence of MaterialHandle
        Resolved material per layer, same length as material_names.
    interfaces : sequence of float
        Interface depths, strictly decreasing; one fewer than layers.
    ground_plane : float
        Depth of the perfectly conducting ground plane, or
        NO_GROUND_PLANE (-inf) when absent.
    """
    __slots__ = ("_names", "_materials", "_interfaces", "_ground_plane", "_layers")

    def __init__(
        self,
        material_names: Sequence[str],
        materials: Sequence[MaterialHandle],
        interfaces: Sequence[float] = (),
        ground_plane: float = NO_GROUND_PLANE,
    ) -> None:
        names = tuple(material_names)
        mats = tuple(materials)
        z_if = tuple(float(z) for z in interfaces)

        if len(names) != len(mats):
            raise ValueError(
                f"LayerStack: {len(names)} names but {len(mats)} materials."
            )
        if len(names) != len(z_if) + 1:
            raise ValueError(
                f"LayerStack: {len(names)} layers need {len(names) - 1} "
                f"interfaces, got {len(z_if)}."
            )
        for i in range(1, len(z_if)):
            if not z_if[i] < z_if[i - 1]:
                raise SubstrateOrderError(
                    f"interface {i} at z={z_if[i]:g} does not lie below "
                    f"interface {i - 1} at z={z_if[i - 1]:g}"
                )
        ground_plane = float(ground_plane)
        if ground_plane == math.inf or math.isnan(ground_plane):
            raise ValueError(f"LayerStack: invalid ground-plane depth {ground_plane}")
        if ground_plane != NO_GROUND_PLANE and z_if and ground_plane > z_if[-1]:
            raise SubstrateOrderError("ground plane must lie below all dielectric layers")

        self._names = names
        self._materials = mats
        self._interfaces = z_if
        self._ground_plane = ground_plane
        self._layers = tuple(self._make_layers())

    def _make_layers(self) -> Iterator[Layer]:
        n = len(self._names)
        for i in range(n):
            upper = self._interfaces[i - 1] if i > 0 else math.inf
            if i < n - 1:
                lower = self._interfaces[i]
            else:
                lower = self._ground_plane
            yield Layer(self._names[i], self._materials[i], lower, upper)

    # -- topology ----------------------------------------------------------
    @property
    def num_layers(self) -> int:
        return len(self._layers)

    @property
    def num_interfaces(self) -> int:
        return len(self._interfaces)

    @property
    def interfaces(self) -> Tuple[float, ...]:
        return self._interfaces

    @property
    def material_names(self) -> Tuple[str, ...]:
        return self._names

    @property
    def materials(self) -> Tuple[MaterialHandle, ...]:
        return self._materials

    @property
    def layers(self) -> Tuple[Layer, ...]:
        return self._layers

    @property
    def has_ground_plane(self) -> bool:
        return self._ground_plane != NO_GROUND_PLANE

    @property
    def ground_plane(self) -> Optional[float]:
        """Ground-plane depth, or None when the stack has none."""
        return self._ground_plane if self.has_ground_plane else None

    def layer_bounds(self, index: int) -> Tuple[float, float]:
        layer = self._layers[index]
        return (layer.z_lower, layer.z_upper)

    # -- queries -----------------------------------------------------------
    def locate_layer(self, z: float) -> int:
        """
        Index of the layer containing depth *z*: the first i with
        ``z > interfaces[i]``, else the deepest layer.
        """
        for i, z_if in enumerate(self._interfaces):
            if z > z_if:
                return i
        return len(self._interfaces)

    def locate_layers(self, z: Union[Sequence[float], np.ndarray]) -> np.ndarray:
        """Vectorised locate_layer for a batch of depths (int32 array)."""
        z_arr = np.ascontiguousarray(z, dtype=FLOAT_TYPE)
        shape = z_arr.shape
        idx = _locate_layers(
            z_arr.reshape(-1),
            np.asarray(self._interfaces, dtype=FLOAT_TYPE),
        )
        return idx.reshape(shape)

    # -- container protocol ------------------------------------------------
    def __len__(self) -> int:
        return len(self._layers)

    def __getitem__(self, index: int) -> Layer:
        return self._layers[index]

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers)

    def get_state(self) -> Dict[str, Any]:
        """Serialisable snapshot (names and depths, no material objects)."""
        return {
            "layers": [layer.get_state() for layer in self._layers],
            "interfaces": list(self._interfaces),
            "ground_plane": self.ground_plane,
        }

    def __repr__(self) -> str:
        gp = f", ground_plane={self._ground_plane:g}" if self.has_ground_plane else ""
        return f"LayerStack(layers={self.num_layers}, interfaces={list(self._interfaces)}{gp})"


class LayerStackBuilder:
    """
    Append-only builder enforcing the stack invariants on every insert.

    Layers are supplied top to bottom. Errors carry no location; callers
    that know the source line attach it with ``SubstrateError.with_location``.
    """
    __slots__ = ("_lookup", "_names", "_materials", "_interfaces", "_ground_plane")

    def __init__(
        self,
        materials: MaterialLookup,
        top_medium: Optional[str] = None,
    ) -> None:
        self._lookup = materials
        self._names: List[str] = []
        self._materials: List[MaterialHandle] = []
        self._interfaces: List[float] = []
        self._ground_plane: float = NO_GROUND_PLANE
        if top_medium is not None:
            self.set_top_medium(top_medium)
        else:
            # Lookups without a VACUUM entry still get a vacuum half-space.
            try:
                vacuum = self._lookup.lookup(DEFAULT_TOP_MEDIUM)
            except MaterialLookupError:
                vacuum = Konstant(eps=1.0, mu=1.0, name=DEFAULT_TOP_MEDIUM)
            self._names.append(DEFAULT_TOP_MEDIUM)
            self._materials.append(vacuum)

    def _resolve(self, name: str) -> MaterialHandle:
        try:
            return self._lookup.lookup(name)
        except MaterialLookupError as exc:
            raise SubstrateMaterialError(str(exc)) from exc

    def set_top_medium(self, name: str) -> MaterialHandle:
        material = self._resolve(name)
        if self._names:
            self._names[0] = name
            self._materials[0] = material
        else:
            self._names.append(name)
            self._materials.append(material)
        return material

    def add_layer(self, z: float, name: str) -> MaterialHandle:
        """Add an interface at depth *z* with a new layer of *name* below it."""
        if self._interfaces and z >= self._interfaces[-1]:
            raise SubstrateOrderError("z coordinate lies at or above previous layer")
        material = self._resolve(name)
        self._interfaces.append(float(z))
        self._names.append(name)
        self._materials.append(material)
        return material

    def set_ground_plane(self, z: float) -> None:
        self._ground_plane = float(z)

    @property
    def num_interfaces(self) -> int:
        return len(self._interfaces)

    def build(self) -> LayerStack:
        if (self._ground_plane != NO_GROUND_PLANE and self._interfaces
                and self._ground_plane > self._interfaces[-1]):
            raise SubstrateOrderError("ground plane must lie below all dielectric layers")
        return LayerStack(self._names, self._materials, self._interfaces, self._ground_plane)


# ═══════════════════════════════════════════════════════════════════════════════
# 5.  MaterialResponseCache
# ═══════════════════════════════════════════════════════════════════════════════
def normalise_frequency(omega: Union[complex, float]) -> complex:
    """Map omega and -omega onto one representative (non-negative real part)."""
    omega = complex(omega)
    return -omega if omega.real < 0.0 else omega


def same_frequency(a: Optional[complex], b: complex, rel_tol: float = OMEGA_RTOL) -> bool:
    """Approximate equality of two normalised frequencies."""
    if a is None:
        return False
    return cmath.isclose(a, b, rel_tol=rel_tol, abs_tol=0.0)


class MaterialResponseCache:
    """
    Single-entry cache of per-layer (eps, mu) keyed by frequency.

    Write path
    ----------
    ``ensure(omega)`` is the only mutator. It normalises the sign of omega,
    returns immediately when the normalised value matches the key, and
    otherwise evaluates every layer material and swaps in new arrays. The
    write path holds a lock, so concurrent ensure() calls serialise.

    Read path
    ---------
    ``eps``, ``mu`` and ``eps_mu(i)`` never mutate and take no lock. They
    reflect the last ensure(); call ensure() once per frequency before
    fanning reads out across threads.
    """
    __slots__ = ("_materials", "_omega", "_eps", "_mu", "_rel_tol", "_lock", "evaluations")

    def __init__(
        self,
        materials: Sequence[MaterialHandle],
        rel_tol: float = OMEGA_RTOL,
    ) -> None:
        self._materials: Tuple[MaterialHandle, ...] = tuple(materials)
        self._omega: Optional[complex] = None
        self._eps = np.zeros(len(self._materials), dtype=COMPLEX_TYPE)
        self._mu = np.zeros(len(self._materials), dtype=COMPLEX_TYPE)
        self._eps.flags.writeable = False
        self._mu.flags.writeable = False
        self._rel_tol = rel_tol
        self._lock = threading.Lock()
        self.evaluations: int = 0

    @property
    def omega(self) -> Optional[complex]:
        """Normalised frequency of the cached entry (None before first use)."""
        return self._omega

    def is_current(self, omega: Union[complex, float]) -> bool:
        return same_frequency(self._omega, normalise_frequency(omega), self._rel_tol)

    def ensure(self, omega: Union[complex, float]) -> bool:
        """
        Make the cache hold the responses at *omega*.

        Returns True if the materials were re-evaluated, False on a hit.
        Material errors propagate and leave the previous entry intact.
        """
        key = normalise_frequency(omega)
        with self._lock:
            if same_frequency(self._omega, key, self._rel_tol):
                return False

            n = len(self._materials)
            eps = np.empty(n, dtype=COMPLEX_TYPE)
            mu = np.empty(n, dtype=COMPLEX_TYPE)
            for i, material in enumerate(self._materials):
                eps[i], mu[i] = material.eps_mu(key)
            eps.flags.writeable = False
            mu.flags.writeable = False

            self._eps, self._mu = eps, mu
            self._omega = key
            self.evaluations += 1
            return True

    def invalidate(self) -> None:
        with self._lock:
            self._omega = None

    @property
    def eps(self) -> np.ndarray:
        """Read-only complex128 array, one permittivity per layer."""
        return self._eps

    @property
    def mu(self) -> np.ndarray:
        """Read-only complex128 array, one permeability per layer."""
        return self._mu

    def eps_mu(self, layer: int) -> Tuple[complex, complex]:
        return complex(self._eps[layer]), complex(self._mu[layer])

    def __len__(self) -> int:
        return len(self._materials)

    def __repr__(self) -> str:
        return f"MaterialResponseCache(layers={len(self)}, omega={self._omega})"
