# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: strata_substrate.py - SubstrateModel, the object handed to the
layered Green's function evaluator.

A SubstrateModel owns one LayerStack, one MaterialResponseCache, one
EvaluationConfig and, lazily, a scalar Green's-function interpolation
table. It is obtained from one of three entry points:

  SubstrateModel.from_file(name)      standalone substrate file, resolved
                                      through STRATA_SUBSTRATE_PATH
  SubstrateModel.from_stream(f, n)    body of a SUBSTRATE section in an
                                      open host file, sharing line counter n
  SubstrateModel.from_text(text)      in-memory standalone description

Each raises a SubstrateError subclass on failure, so a model that exists
is always fully built. The functions load_substrate_file,
read_substrate_section and create_substrate return a SubstrateResult
instead of raising.
"""

from __future__ import annotations

import math
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Sequence,
    TextIO,
    Tuple,
    Union,
)

import numpy as np
from loguru import logger

from strata_config import ConfigError, EvaluationConfig, Verbosity
from strata_parser import (
    LineCounter,
    LineSource,
    parse_substrate_file,
    parse_substrate_section,
)
from strata_stack import (
    Layer,
    LayerStack,
    MaterialResponseCache,
    SubstrateError,
    SubstrateFileError,
    same_frequency,
    wrap_material_source,
)

SEARCH_PATH_VAR = "STRATA_SUBSTRATE_PATH"

SearchPath = Union[str, Sequence[Union[str, os.PathLike]], None]
TableFactory = Callable[["SubstrateModel", complex, float], Any]


def resolve_substrate_path(name: Union[str, os.PathLike], search_path: SearchPath = None) -> Path:
    """
    Locate a substrate file.

    Relative names are tried in each directory of *search_path* (a list,
    or an os.pathsep-separated string; defaults to STRATA_SUBSTRATE_PATH)
    and then as given, relative to the working directory.

    Raises:
        SubstrateFileError: If no candidate is a readable file.
    """
    path = Path(name)
    if search_path is None:
        search_path = os.environ.get(SEARCH_PATH_VAR, "")
    if isinstance(search_path, str):
        dirs = [d for d in search_path.split(os.pathsep) if d]
    else:
        dirs = [os.fspath(d) for d in search_path]

    candidates = [] if path.is_absolute() else [Path(d) / path for d in dirs]
    candidates.append(path)
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise SubstrateFileError(f"could not open file {os.fspath(name)}")


class SubstrateModel:
    """
    Planar layered substrate as seen by the Green's function evaluator.

    Parameters
    ----------
    stack : LayerStack
        Validated layer topology.
    config : EvaluationConfig, optional
        Quadrature settings; defaults to ``EvaluationConfig.from_env()``.
    source : str, optional
        Where the description came from (diagnostics only).

    Thread safety
    -------------
    Read-only queries are safe from any thread. update_cached_eps_mu()
    mutates the shared cache: call it once per frequency before fanning
    out parallel work (concurrent calls are serialised by the cache but
    readers may observe either frequency).
    """

    def __init__(
        self,
        stack: LayerStack,
        config: Optional[EvaluationConfig] = None,
        source: Optional[str] = None,
    ) -> None:
        self._stack = stack
        self._config = config if config is not None else EvaluationConfig.from_env()
        self._cache = MaterialResponseCache(stack.materials)
        self.source = source

        self._sgf_table: Any = None
        self._z_sgfi: Optional[float] = None
        self._omega_sgfi: Optional[complex] = None

    # -- construction entry points -----------------------------------------
    @classmethod
    def from_file(
        cls,
        name: Union[str, os.PathLike],
        *,
        materials: Any = None,
        config: Optional[EvaluationConfig] = None,
        search_path: SearchPath = None,
        source: Optional[str] = None,
    ) -> "SubstrateModel":
        """
        Build from a standalone substrate file.

        *materials* is anything wrap_material_source() accepts; *source*
        overrides the name used in diagnostics.
        """
        config = config if config is not None else EvaluationConfig.from_env()
        lookup = wrap_material_source(materials)
        label = source or os.fspath(name)

        path = resolve_substrate_path(name, search_path)
        if config.verbosity > Verbosity.SILENT:
            logger.info(f"Reading substrate definition from {path}.")
        try:
            # Stray non-UTF-8 bytes (usually in comments) decode to U+FFFD.
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                stack = parse_substrate_file(f, lookup, source=label, verbosity=config.verbosity)
        except OSError as exc:
            raise SubstrateFileError(f"could not open file {label}: {exc.strerror}") from exc

        return cls(stack, config, source=label)

    @classmethod
    def from_stream(
        cls,
        stream: LineSource,
        line_counter: Optional[LineCounter] = None,
        *,
        materials: Any = None,
        config: Optional[EvaluationConfig] = None,
        source: Optional[str] = None,
    ) -> "SubstrateModel":
        """
        Build from the body of a ``SUBSTRATE ... ENDSUBSTRATE`` section.

        *stream* must be positioned just after the ``SUBSTRATE`` line. On
        return (or failure) *line_counter* holds the number of the last
        line consumed, and the stream is positioned after ENDSUBSTRATE.
        """
        config = config if config is not None else EvaluationConfig.from_env()
        lookup = wrap_material_source(materials)
        stack = parse_substrate_section(
            stream, lookup, line_counter, source=source, verbosity=config.verbosity
        )
        return cls(stack, config, source=source)

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        materials: Any = None,
        config: Optional[EvaluationConfig] = None,
        source: Optional[str] = None,
    ) -> "SubstrateModel":
        """
        Build from an in-memory standalone description.

        The text goes through a temporary file that is removed on every
        exit path.
        """
        fd, tmp_name = tempfile.mkstemp(prefix="strata_", suffix=".substrate")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            return cls.from_file(
                tmp_name,
                materials=materials,
                config=config,
                search_path=(),
                source=source or "<string>",
            )
        finally:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass

    # -- topology ----------------------------------------------------------
    @property
    def stack(self) -> LayerStack:
        return self._stack

    @property
    def layers(self) -> Tuple[Layer, ...]:
        return self._stack.layers

    @property
    def num_layers(self) -> int:
        return self._stack.num_layers

    @property
    def num_interfaces(self) -> int:
        return self._stack.num_interfaces

    @property
    def interfaces(self) -> Tuple[float, ...]:
        return self._stack.interfaces

    @property
    def material_names(self) -> Tuple[str, ...]:
        return self._stack.material_names

    @property
    def has_ground_plane(self) -> bool:
        return self._stack.has_ground_plane

    @property
    def ground_plane(self) -> Optional[float]:
        return self._stack.ground_plane

    def locate_layer(self, z: float) -> int:
        return self._stack.locate_layer(z)

    def locate_layers(self, z: Union[Sequence[float], np.ndarray]) -> np.ndarray:
        return self._stack.locate_layers(z)

    # -- materials ---------------------------------------------------------
    @property
    def config(self) -> EvaluationConfig:
        return self._config

    @property
    def cache(self) -> MaterialResponseCache:
        return self._cache

    @property
    def omega_cache(self) -> Optional[complex]:
        """Normalised frequency the per-layer (eps, mu) currently describe."""
        return self._cache.omega

    def update_cached_eps_mu(self, omega: Union[complex, float]) -> bool:
        """
        Make eps_layer/mu_layer describe frequency *omega*.

        Returns True if the layer materials were re-evaluated.
        """
        recomputed = self._cache.ensure(omega)
        if recomputed and self._config.verbosity > Verbosity.SILENT:
            logger.debug(f"Substrate eps/mu updated for omega={self._cache.omega}")
        return recomputed

    @property
    def eps_layer(self) -> np.ndarray:
        return self._cache.eps

    @property
    def mu_layer(self) -> np.ndarray:
        return self._cache.mu

    def eps_mu(self, layer: int) -> Tuple[complex, complex]:
        return self._cache.eps_mu(layer)

    # -- scalar Green's function interpolation table -----------------------
    @property
    def z_sgfi(self) -> Optional[float]:
        return self._z_sgfi

    @property
    def omega_sgfi(self) -> Optional[complex]:
        return self._omega_sgfi

    @property
    def has_scalar_gf_table(self) -> bool:
        return self._sgf_table is not None

    def scalar_gf_table(self, omega: Union[complex, float], z: float, factory: TableFactory) -> Any:
        """
        Interpolation table valid for (*omega*, *z*).

        The table is created with ``factory(model, omega, z)`` on first
        use and re-created whenever omega or z differ from the keys of the
        current table. The per-layer cache is brought to *omega* first.
        """
        omega = complex(omega)
        z = float(z)
        if (self._sgf_table is not None and z == self._z_sgfi
                and same_frequency(self._omega_sgfi, omega)):
            return self._sgf_table

        self.destroy_scalar_gf_table()
        self.update_cached_eps_mu(omega)
        logger.debug(f"Building scalar GF table at omega={omega}, z={z:g}")
        self._sgf_table = factory(self, omega, z)
        self._omega_sgfi = omega
        self._z_sgfi = z
        return self._sgf_table

    def destroy_scalar_gf_table(self) -> None:
        table = self._sgf_table
        self._sgf_table = None
        self._omega_sgfi = None
        self._z_sgfi = None
        close = getattr(table, "close", None)
        if callable(close):
            close()

    def close(self) -> None:
        self.destroy_scalar_gf_table()
        self._cache.invalidate()

    def __enter__(self) -> "SubstrateModel":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -- diagnostics -------------------------------------------------------
    def describe_lines(self) -> List[str]:
        """Human-readable layer table, one string per line."""
        width = max(len(name) for name in self._stack.material_names)
        lines = ["Created multilayered dielectric substrate:"]
        for i, layer in enumerate(self._stack):
            lines.append(
                f"  Layer {i:2d} ({layer.material_name:<{width}}): {_depth_range(layer)}"
            )
        if self.has_ground_plane:
            lines.append(f"  Ground plane at z={self.ground_plane!r}.")
        return lines

    def describe(self, sink: Optional[TextIO] = None) -> None:
        """Write the layer table to *sink* (default stdout) and the log."""
        sink = sys.stdout if sink is None else sink
        for line in self.describe_lines():
            sink.write(line + "\n")
            logger.info(line)

    def get_state(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "stack": self._stack.get_state(),
            "config": self._config.get_state(),
        }

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._stack)

    def __len__(self) -> int:
        return self._stack.num_layers

    def __repr__(self) -> str:
        src = f"'{self.source}'" if self.source else "None"
        return f"SubstrateModel(source={src}, {self._stack!r})"


def _depth_range(layer: Layer) -> str:
    lo, hi = layer.z_lower, layer.z_upper
    if math.isinf(lo) and math.isinf(hi):
        return "all z"
    if math.isinf(hi):
        return f"z > {lo!r}"
    if math.isinf(lo):
        return f"z <= {hi!r}"
    return f"{lo!r} < z <= {hi!r}"


# ═══════════════════════════════════════════════════════════════════════════════
# Result-returning entry points
# ═══════════════════════════════════════════════════════════════════════════════
@dataclass(slots=True, frozen=True)
class SubstrateResult:
    """
    Outcome of a construction attempt: exactly one of *model* / *error*.

    ``bool(result)`` is True on success; unwrap() returns the model or
    raises the stored error.
    """
    model: Optional[SubstrateModel] = None
    error: Optional[Exception] = None

    def __post_init__(self) -> None:
        if (self.model is None) == (self.error is None):
            raise ValueError("SubstrateResult needs exactly one of model or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_message(self) -> Optional[str]:
        return None if self.error is None else str(self.error)

    def unwrap(self) -> SubstrateModel:
        if self.error is not None:
            raise self.error
        return self.model

    def __bool__(self) -> bool:
        return self.ok


def _attempt(build: Callable[[], SubstrateModel]) -> SubstrateResult:
    try:
        return SubstrateResult(model=build())
    except (SubstrateError, ConfigError) as exc:
        logger.debug(f"Substrate construction failed: {exc}")
        return SubstrateResult(error=exc)


def load_substrate_file(name: Union[str, os.PathLike], **kwargs: Any) -> SubstrateResult:
    """Result-returning SubstrateModel.from_file."""
    return _attempt(lambda: SubstrateModel.from_file(name, **kwargs))


def read_substrate_section(
    stream: LineSource,
    line_counter: Optional[LineCounter] = None,
    **kwargs: Any,
) -> SubstrateResult:
    """Result-returning SubstrateModel.from_stream."""
    return _attempt(lambda: SubstrateModel.from_stream(stream, line_counter, **kwargs))


def create_substrate(text: str, **kwargs: Any) -> SubstrateResult:
    """Result-returning SubstrateModel.from_text."""
    return _attempt(lambda: SubstrateModel.from_text(text, **kwargs))
