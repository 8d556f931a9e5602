# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: basic.py - Constant and tabulated (eps, mu) materials.

Notes:
  - Hybrid parameter API for all classes (params dict or keywords).
  - TableMaterial interpolates the real and imaginary parts separately;
    the scipy interpolators are built once, on first evaluation.
"""

from typing import Callable, Dict, Optional, Sequence

import numpy as np
from scipy.interpolate import Akima1DInterpolator, CubicSpline, PchipInterpolator

from .material import Material, Number

__all__ = ["Konstant", "TableMaterial"]


class Konstant(Material):
    """
    Material with frequency-independent relative permittivity and
    permeability.

    Useful for lossless or constant-loss dielectrics and for reference
    media such as vacuum.

    Parameters:
        eps: Relative permittivity (required, complex allowed, nonzero).
        mu: Relative permeability (optional, default 1.0, nonzero).
        name: Display name.
        params: Dictionary with 'eps' and optionally 'mu'.

    Examples:
        si = Konstant(eps=11.7, name="Silicon")
        lossy = Konstant(params={'eps': 4.4 + 0.088j})
        si.set_param('eps', 11.9)
    """

    def __init__(
        self,
        eps: Optional[Number] = None,
        mu: Optional[Number] = None,
        name: Optional[str] = None,
        params: Optional[Dict[str, Number]] = None,
        **kwargs: Number
    ):
        p = params.copy() if params else {}
        if eps is not None:
            p['eps'] = eps
        if mu is not None:
            p['mu'] = mu
        p.update(kwargs)

        super().__init__(name=name, params=p)

        self._validate_params(required=['eps'], optional={'mu': 1.0})

        if self.params['eps'] == 0:
            raise ValueError("Relative permittivity eps must be nonzero")
        if self.params['mu'] == 0:
            raise ValueError("Relative permeability mu must be nonzero")

    @property
    def eps(self) -> complex:
        return complex(self.params['eps'])

    @property
    def mu(self) -> complex:
        return complex(self.params['mu'])

    def permittivity(self, omega: complex) -> complex:
        return complex(self.params['eps'])

    def permeability(self, omega: complex) -> complex:
        return complex(self.params['mu'])


class TableMaterial(Material):
    """
    Material with tabulated permittivity (and optionally permeability)
    versus real angular frequency.

    Supports the interpolation methods: linear, cubicspline, pchip,
    akima, makima. Values outside the tabulated range are extrapolated
    (linear interpolation clamps to the end points instead).

    Parameters:
        omega_data: Real angular frequencies of the table rows.
        eps_data: Complex permittivity at each row.
        mu_data: Complex permeability at each row (optional, default 1).
        interpolation_type: Interpolation method name.
        name: Display name.
        params: Dictionary with 'eps_factor' and 'mu_factor' scaling.

    Examples:
        w = [1.0, 2.0, 3.0]
        mat = TableMaterial(w, [4.0 + 0.1j, 3.9 + 0.1j, 3.8 + 0.2j],
                            interpolation_type="pchip", name="Polyimide")
    """

    def __init__(
        self,
        omega_data: Sequence[float],
        eps_data: Sequence[Number],
        mu_data: Optional[Sequence[Number]] = None,
        interpolation_type: str = "linear",
        name: Optional[str] = None,
        eps_factor: Optional[Number] = None,
        mu_factor: Optional[Number] = None,
        params: Optional[Dict[str, Number]] = None,
        **kwargs: Number
    ):
        p = params.copy() if params else {}
        if eps_factor is not None:
            p['eps_factor'] = eps_factor
        if mu_factor is not None:
            p['mu_factor'] = mu_factor
        p.update(kwargs)

        super().__init__(name=name, params=p)
        self._validate_params(optional={'eps_factor': 1.0, 'mu_factor': 1.0})

        omega = np.asarray(omega_data, dtype=np.float64)
        eps = np.asarray(eps_data, dtype=np.complex128)
        if omega.ndim != 1 or omega.size < 2:
            raise ValueError("TableMaterial needs at least two frequency rows.")
        if eps.shape != omega.shape:
            raise ValueError(
                f"eps_data shape {eps.shape} does not match omega_data shape {omega.shape}"
            )
        if mu_data is not None:
            mu = np.asarray(mu_data, dtype=np.complex128)
            if mu.shape != omega.shape:
                raise ValueError(
                    f"mu_data shape {mu.shape} does not match omega_data shape {omega.shape}"
                )
        else:
            mu = None

        order = np.argsort(omega)
        omega = omega[order]
        if np.any(np.diff(omega) <= 0.0):
            raise ValueError("TableMaterial frequencies must be distinct.")

        if interpolation_type not in _INTERPOLATORS:
            raise ValueError(
                f"Unknown interpolation type '{interpolation_type}'. "
                f"Choose from: {list(_INTERPOLATORS.keys())}"
            )
        self.interpolation_type = interpolation_type

        # Raw data (not in params - these are data arrays)
        self.omega_data = omega
        self.eps_data = eps[order]
        self.mu_data = mu[order] if mu is not None else None

        self._eps_interp: Optional[Callable[[float], complex]] = None
        self._mu_interp: Optional[Callable[[float], complex]] = None

    def _build(self, values: np.ndarray) -> Callable[[float], complex]:
        make = _INTERPOLATORS[self.interpolation_type]
        re_part = make(self.omega_data, values.real)
        im_part = make(self.omega_data, values.imag)
        return lambda w: complex(float(re_part(w)), float(im_part(w)))

    @staticmethod
    def _real_frequency(omega: complex) -> float:
        if omega.imag != 0.0:
            raise ValueError(
                f"Tabulated materials are defined for real frequencies only, got omega={omega}"
            )
        return omega.real

    def permittivity(self, omega: complex) -> complex:
        w = self._real_frequency(omega)
        if self._eps_interp is None:
            self._eps_interp = self._build(self.eps_data)
        return self.params['eps_factor'] * self._eps_interp(w)

    def permeability(self, omega: complex) -> complex:
        if self.mu_data is None:
            return complex(self.params['mu_factor'])
        w = self._real_frequency(omega)
        if self._mu_interp is None:
            self._mu_interp = self._build(self.mu_data)
        return self.params['mu_factor'] * self._mu_interp(w)

    def set_param(self, param_name: str, value: Number) -> None:
        """
        Set a scaling factor by name.

        The interpolators are independent of the factors and are kept.
        """
        if param_name not in self.params:
            raise AttributeError(
                f"Parameter '{param_name}' does not exist in TableMaterial. "
                f"Available parameters: {list(self.params.keys())}"
            )
        super().set_param(param_name, value)


def _linear(x: np.ndarray, y: np.ndarray) -> Callable[[float], float]:
    return lambda w: np.interp(w, x, y)


_INTERPOLATORS: Dict[str, Callable[[np.ndarray, np.ndarray], Callable[[float], float]]] = {
    "linear": _linear,
    "cubicspline": lambda x, y: CubicSpline(x, y, extrapolate=True),
    "pchip": lambda x, y: PchipInterpolator(x, y, extrapolate=True),
    "akima": lambda x, y: Akima1DInterpolator(x, y, method="akima", extrapolate=True),
    "makima": lambda x, y: Akima1DInterpolator(x, y, method="makima", extrapolate=True),
}
