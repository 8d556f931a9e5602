# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: strata_config.py - Quadrature and interpolation settings for the
layered Green's function evaluator.

EvaluationConfig is an immutable value object. Host applications build it
explicitly, or from environment variables through ``from_env()``:

    STRATA_QMAXEVAL      int    max_eval
    STRATA_QMAXEVALA     int    max_eval_a   (0 → max_eval)
    STRATA_QMAXEVALB     int    max_eval_b   (0 → max_eval)
    STRATA_QABSTOL       float  abs_tol
    STRATA_QRELTOL       float  rel_tol
    STRATA_PPIORDER      int    ppi_order
    STRATA_PHIEORDER     int    phie_order
    STRATA_LOGLEVEL      int    verbosity    (0 silent … 3 very verbose)
    STRATA_BYQFILES      flag   write_byq_files ("1" enables)
    STRATA_FORCE_METHOD  str    method       (auto | free_space | static_limit)

Malformed values raise ConfigError unless ``strict=False``. Permissive mode
reads numbers from the leading digits of a value ("2.5" gives 2 for an
integer) and accepts unique method prefixes; values that still do not parse
are skipped with a SubstrateWarning and the default is kept.
"""

from __future__ import annotations

import dataclasses
import os
import re
import warnings
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from loguru import logger

from strata_stack import SubstrateWarning

ENV_PREFIX = "STRATA_"


class ConfigError(ValueError):
    """Invalid evaluation setting."""


class Verbosity(IntEnum):
    SILENT = 0
    TERSE = 1
    VERBOSE = 2
    VERBOSE2 = 3


class EvaluationMethod(Enum):
    """Forced choice of Green's-function evaluation method."""
    AUTO = "auto"
    FREE_SPACE = "free_space"
    STATIC_LIMIT = "static_limit"


# ---------------------------------------------------------------------------
# EvaluationConfig
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class EvaluationConfig:
    """
    Tunables for the substrate contribution to the Green's function.

    max_eval, max_eval_a, max_eval_b
        Cap on integrand evaluations, globally and per quadrature axis.
        A per-axis cap of 0 inherits max_eval (see eval_limit_a/b).
    abs_tol, rel_tol
        Absolute and relative quadrature tolerances.
    ppi_order, phie_order
        Interpolation orders of the panel-panel and scalar-potential
        tables.
    verbosity
        Logging detail requested from the evaluator.
    write_byq_files
        Dump per-evaluation integrand data to disk.
    method
        AUTO, or force the free-space or static-limit evaluation.
    """
    max_eval: int = 2000
    max_eval_a: int = 0
    max_eval_b: int = 0
    abs_tol: float = 1e-8
    rel_tol: float = 1e-4
    ppi_order: int = 9
    phie_order: int = 9
    verbosity: Verbosity = Verbosity.TERSE
    write_byq_files: bool = False
    method: EvaluationMethod = EvaluationMethod.AUTO

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "verbosity", Verbosity(self.verbosity))
        except ValueError:
            raise ConfigError(
                f"verbosity must be one of {[int(v) for v in Verbosity]}, got {self.verbosity!r}"
            ) from None
        try:
            object.__setattr__(self, "method", EvaluationMethod(self.method))
        except ValueError:
            raise ConfigError(
                f"method must be one of {[m.value for m in EvaluationMethod]}, got {self.method!r}"
            ) from None

        if self.max_eval <= 0:
            raise ConfigError(f"max_eval must be positive, got {self.max_eval}")
        for name in ("max_eval_a", "max_eval_b"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        for name in ("abs_tol", "rel_tol"):
            if not getattr(self, name) > 0.0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("ppi_order", "phie_order"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be >= 1, got {getattr(self, name)}")

    @property
    def eval_limit_a(self) -> int:
        return self.max_eval_a or self.max_eval

    @property
    def eval_limit_b(self) -> int:
        return self.max_eval_b or self.max_eval

    @property
    def force_free_space(self) -> bool:
        return self.method is EvaluationMethod.FREE_SPACE

    @property
    def static_limit(self) -> bool:
        return self.method is EvaluationMethod.STATIC_LIMIT

    def replace(self, **changes: Any) -> "EvaluationConfig":
        """Return a copy with *changes* applied (validated again)."""
        return dataclasses.replace(self, **changes)

    def get_state(self) -> Dict[str, Any]:
        state = dataclasses.asdict(self)
        state["verbosity"] = int(self.verbosity)
        state["method"] = self.method.value
        return state

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        strict: bool = True,
        **overrides: Any,
    ) -> "EvaluationConfig":
        """
        Defaults, then recognised environment variables, then *overrides*.

        Parameters
        ----------
        environ : mapping, optional
            Variable source (defaults to os.environ).
        strict : bool
            Raise ConfigError on malformed values (default). With False,
            malformed values are ignored with a SubstrateWarning.
        **overrides
            Explicit field values, applied last.
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        for var, (field_name, parse) in _ENV_FIELDS.items():
            raw = env.get(ENV_PREFIX + var)
            if raw is None:
                continue
            try:
                values[field_name] = parse(raw, strict)
            except ValueError as exc:
                message = f"{ENV_PREFIX}{var}={raw!r}: {exc}"
                if strict:
                    raise ConfigError(message) from None
                warnings.warn(f"ignoring {message}", SubstrateWarning, stacklevel=2)
                continue
            logger.debug(f"{ENV_PREFIX}{var} sets {field_name}={values[field_name]!r}")

        values.update(overrides)
        return cls(**values)


# ---------------------------------------------------------------------------
# Environment value parsers
# ---------------------------------------------------------------------------
# Permissive mode reads the leading number and ignores trailing text
# ("2.5" -> 2 for integers, "1e-6tight" -> 1e-6 for floats).
_INT_PREFIX = re.compile(r"[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _parse_int(raw: str, strict: bool) -> int:
    text = raw.strip()
    if not strict:
        match = _INT_PREFIX.match(text)
        text = match.group() if match else text
    try:
        return int(text)
    except ValueError:
        raise ValueError("expected an integer") from None


def _parse_float(raw: str, strict: bool) -> float:
    text = raw.strip()
    if not strict:
        match = _FLOAT_PREFIX.match(text)
        text = match.group() if match else text
    try:
        return float(text)
    except ValueError:
        raise ValueError("expected a number") from None


def _parse_verbosity(raw: str, strict: bool) -> Verbosity:
    level = _parse_int(raw, strict)
    try:
        return Verbosity(level)
    except ValueError:
        raise ValueError(f"expected a level in 0..{int(max(Verbosity))}") from None


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"", "0", "false", "no", "off"}


def _parse_flag(raw: str, strict: bool) -> bool:
    text = raw.strip().lower()
    if not strict:
        return text.startswith("1")
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError("expected 1 or 0")


def _parse_method(raw: str, strict: bool) -> EvaluationMethod:
    text = raw.strip().lower()
    if not strict and text:
        # unique prefixes such as "free" or "static"
        matches = [m for m in EvaluationMethod if m.value.startswith(text)]
        if len(matches) == 1:
            return matches[0]
    try:
        return EvaluationMethod(text)
    except ValueError:
        raise ValueError(
            f"expected one of {[m.value for m in EvaluationMethod]}"
        ) from None


_ENV_FIELDS: Dict[str, Tuple[str, Callable[[str, bool], Any]]] = {
    "QMAXEVAL": ("max_eval", _parse_int),
    "QMAXEVALA": ("max_eval_a", _parse_int),
    "QMAXEVALB": ("max_eval_b", _parse_int),
    "QABSTOL": ("abs_tol", _parse_float),
    "QRELTOL": ("rel_tol", _parse_float),
    "PPIORDER": ("ppi_order", _parse_int),
    "PHIEORDER": ("phie_order", _parse_int),
    "LOGLEVEL": ("verbosity", _parse_verbosity),
    "BYQFILES": ("write_byq_files", _parse_flag),
    "FORCE_METHOD": ("method", _parse_method),
}
