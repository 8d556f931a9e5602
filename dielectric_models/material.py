# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: material.py - Base class for dielectric/magnetic materials.

Frequency model:
  - Every material answers ``eps_mu(omega)`` for a complex angular
    frequency and returns the relative (eps, mu) pair.
  - self.params is the single source of truth for model parameters.
  - The most recent evaluation is memoised per material and dropped by
    set_param(), so repeated queries at one frequency are free.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

Number = Union[float, int, complex]


class MaterialLookupError(ValueError):
    """Raised when a material name cannot be resolved or evaluated."""


class Material:
    """
    Base class for materials with complex relative permittivity and
    permeability.

    Subclasses must override ``permittivity()`` and may override
    ``permeability()`` (non-magnetic by default).

    Attributes:
        name : str
            Display name used in diagnostics and layer descriptions.
        params : Dict[str, Any]
            Dictionary of material parameters (single source of truth).
    """

    def __init__(
        self,
        name: Optional[str] = None,
        params: Optional[Dict[str, Number]] = None,
        **kwargs: Number
    ):
        """
        Initialize material with parameters.

        Args:
            name: Display name (defaults to the class name).
            params: Dictionary of material parameters.
            **kwargs: Individual parameters (override params dict).

        Examples:
            # Dict-based (good for config files)
            Konstant(params={'eps': 11.7})

            # Keyword-based (good for interactive use)
            Konstant(eps=11.7 + 0.1j, mu=1.0)
        """
        # Real scalars are cast to float, complex scalars to complex;
        # anything else (oscillator lists, tables) is stored as-is.
        initial_params = params or {}
        merged = {**initial_params, **kwargs}
        self.params: Dict[str, Any] = {}
        for k, v in merged.items():
            self.params[k] = _coerce_scalar(v)

        self.name: str = name or self.__class__.__name__
        self._memo_omega: Optional[complex] = None
        self._memo_eps_mu: Optional[Tuple[complex, complex]] = None

    def _validate_params(
        self,
        required: Optional[List[str]] = None,
        optional: Optional[Dict[str, Number]] = None
    ) -> None:
        """
        Validate and set defaults for parameters.

        Raises:
            ValueError: If a required parameter is missing.
        """
        if required:
            for param in required:
                if param not in self.params:
                    raise ValueError(
                        f"Parameter '{param}' is required for {self.__class__.__name__}."
                    )

        if optional:
            for param, default in optional.items():
                self.params.setdefault(param, _coerce_scalar(default))

    def eps_mu(self, omega: Number) -> Tuple[complex, complex]:
        """
        Return the relative (eps, mu) pair at angular frequency *omega*.

        The result of the last call is memoised; a different omega or a
        parameter change triggers re-evaluation.
        """
        omega = complex(omega)
        if self._memo_omega is not None and omega == self._memo_omega:
            return self._memo_eps_mu

        eps = complex(self.permittivity(omega))
        mu = complex(self.permeability(omega))
        self._memo_omega = omega
        self._memo_eps_mu = (eps, mu)
        return self._memo_eps_mu

    def permittivity(self, omega: complex) -> complex:
        """Override in subclass: return eps(omega)."""
        raise NotImplementedError(
            f"{self.__class__.__name__} must implement permittivity()"
        )

    def permeability(self, omega: complex) -> complex:
        return 1.0 + 0.0j

    def get_params(self) -> Dict[str, Any]:
        """Return a copy of material parameters."""
        return self.params.copy()

    def set_param(self, param_name: str, value: Number) -> None:
        """
        Set a material parameter by name and drop the memoised response.

        Raises:
            TypeError: If value is not numeric.
        """
        if not isinstance(value, (int, float, complex, np.number)):
            raise TypeError(
                f"Parameter '{param_name}' must be numeric, got {type(value).__name__}"
            )

        self.params[param_name] = _coerce_scalar(value)
        self.invalidate()

    def invalidate(self) -> None:
        self._memo_omega = None
        self._memo_eps_mu = None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


def _coerce_scalar(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    if isinstance(value, (complex, np.complexfloating)):
        return complex(value)
    return value
