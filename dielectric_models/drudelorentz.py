# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later
"""

import numpy as np
from numba import njit
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .material import Material

__all__ = ["Drude", "DrudeLorentz"]

_PARAM_MAP: Dict[str, int] = {"w0": 0, "gamma": 1, "f0": 2}
_NO_OSCILLATORS = np.zeros((0, 3), dtype=np.float64)


@njit(cache=True)
def compute_drude_lorentz_eps(
    omega: complex,
    omega_p: float,
    gamma_d: float,
    eps_inf: float,
    lorentz_params: np.ndarray,
) -> complex:
    """
    Relative permittivity of the Drude-Lorentz model at complex *omega*.

    Args:
        omega: Complex angular frequency (nonzero when omega_p > 0).
        omega_p: Plasma frequency of the Drude term (same units as omega).
        gamma_d: Damping constant of the Drude term.
        eps_inf: High-frequency dielectric constant.
        lorentz_params: Oscillators as an (N, 3) array of (w0, gamma, f0).

    Returns:
        eps_inf - omega_p^2 / (omega^2 + i*gamma_d*omega)
                + sum f0*w0^2 / (w0^2 - omega^2 - i*omega*gamma)
    """
    eps = eps_inf + 0j
    if omega_p != 0.0:
        eps -= (omega_p * omega_p) / (omega * omega + 1j * gamma_d * omega)

    omega_sq = omega * omega
    for i in range(lorentz_params.shape[0]):
        w0 = lorentz_params[i, 0]
        gamma_l = lorentz_params[i, 1]
        f0 = lorentz_params[i, 2]
        w0_sq = w0 * w0
        eps += (f0 * w0_sq) / (w0_sq - omega_sq - 1j * omega * gamma_l)

    return eps


def _validate_oscillator(w0: float, gamma: float, f0: float, label: str = "") -> None:
    """Validate physical constraints for a single oscillator."""
    prefix = f"Oscillator {label}: " if label else ""
    if w0 <= 0:
        raise ValueError(f"{prefix}w0 must be positive, got {w0}")
    if gamma < 0:
        raise ValueError(f"{prefix}gamma must be non-negative, got {gamma}")
    if f0 <= 0:
        raise ValueError(f"{prefix}f0 must be positive, got {f0}")


def _parse_osc_key(name: str) -> Optional[Tuple[str, int]]:
    """Parse an oscillator flat-key name like 'w0_2' into ('w0', 2)."""
    if "_" not in name:
        return None
    prefix, idx_str = name.rsplit("_", 1)
    if prefix in _PARAM_MAP and idx_str.isdigit():
        return prefix, int(idx_str)
    return None


class Drude(Material):
    """
    Free-electron (Drude) permittivity, typical for metallic layers.

    Args:
        omega_p: Plasma frequency (units of omega).
        gamma_drude: Damping constant (units of omega).
        epsilon_inf: High-frequency dielectric constant (default 1.0).

    Example:
        >>> gold = Drude(omega_p=13.7, gamma_drude=0.0405, name="Gold")
        >>> eps, mu = gold.eps_mu(1.0)
    """

    def __init__(
        self,
        omega_p: Optional[float] = None,
        gamma_drude: Optional[float] = None,
        epsilon_inf: Optional[float] = None,
        name: Optional[str] = None,
        params: Optional[Dict[str, Union[float, int]]] = None,
    ):
        p = params.copy() if params else {}
        for key, value in (("omega_p", omega_p), ("gamma_drude", gamma_drude),
                           ("epsilon_inf", epsilon_inf)):
            if value is not None:
                p[key] = value
        super().__init__(name=name, params=p)

        self._validate_params(required=['omega_p', 'gamma_drude'], optional={'epsilon_inf': 1.0})

        if self.params['omega_p'] <= 0:
            raise ValueError("Plasma frequency must be positive")
        if self.params['gamma_drude'] < 0:
            raise ValueError("Drude damping constant must be non-negative")

    def permittivity(self, omega: complex) -> complex:
        if omega == 0:
            raise ValueError(f"{self.name}: Drude permittivity is singular at omega=0")
        return compute_drude_lorentz_eps(
            omega,
            self.params['omega_p'],
            self.params['gamma_drude'],
            self.params['epsilon_inf'],
            _NO_OSCILLATORS,
        )


class DrudeLorentz(Material):
    """
    Drude term plus a sum of Lorentz oscillators.

    Each oscillator is a (w0, gamma, f0) triple: resonance frequency,
    damping constant and strength. Oscillator values are mirrored into
    params as flat keys (``w0_0``, ``gamma_0``, ``f0_0``, ...) and can be
    edited through set_param().

    Args:
        omega_p: Plasma frequency of the Drude term; 0 disables it.
        gamma_drude: Drude damping constant.
        osc_params: Sequence of (w0, gamma, f0) triples (at least one).
        epsilon_inf: High-frequency dielectric constant (default 1.0).
    """

    def __init__(
        self,
        osc_params: Sequence[Tuple[float, float, float]],
        omega_p: float = 0.0,
        gamma_drude: float = 0.0,
        epsilon_inf: float = 1.0,
        name: Optional[str] = None,
    ):
        super().__init__(
            name=name,
            params={'omega_p': omega_p, 'gamma_drude': gamma_drude,
                    'epsilon_inf': epsilon_inf},
        )

        if self.params['omega_p'] < 0:
            raise ValueError("Plasma frequency must be non-negative")
        if self.params['gamma_drude'] < 0:
            raise ValueError("Drude damping constant must be non-negative")
        if not osc_params:
            raise ValueError("At least one Lorentz oscillator must be specified")

        self._osc_params: List[Tuple[float, float, float]] = []
        for i, osc in enumerate(osc_params):
            if len(osc) != 3:
                raise ValueError(f"Oscillator {i} must be (w0, gamma, f0), got {osc}")
            _validate_oscillator(*osc, label=str(i))
            self._osc_params.append((float(osc[0]), float(osc[1]), float(osc[2])))

        self._sync()

    def _sync(self) -> None:
        """Project the oscillator list to the params dict and the numba array."""
        self._lorentz_params = np.array(self._osc_params, dtype=np.float64)

        stale_keys = [k for k in self.params if _parse_osc_key(k) is not None]
        for k in stale_keys:
            del self.params[k]

        for i, (w0, g, f) in enumerate(self._osc_params):
            self.params[f"w0_{i}"] = w0
            self.params[f"gamma_{i}"] = g
            self.params[f"f0_{i}"] = f

        self.invalidate()

    @property
    def n_oscillators(self) -> int:
        return len(self._osc_params)

    def permittivity(self, omega: complex) -> complex:
        if omega == 0 and self.params['omega_p'] != 0:
            raise ValueError(f"{self.name}: Drude permittivity is singular at omega=0")
        return compute_drude_lorentz_eps(
            omega,
            self.params['omega_p'],
            self.params['gamma_drude'],
            self.params['epsilon_inf'],
            self._lorentz_params,
        )

    def add_oscillator(self, w0: float, gamma: float, f0: float) -> None:
        """Append a validated oscillator and synchronise state."""
        _validate_oscillator(w0, gamma, f0)
        self._osc_params.append((float(w0), float(gamma), float(f0)))
        self._sync()

    def remove_oscillator(self, index: int) -> Tuple[float, float, float]:
        """
        Remove oscillator at *index* and return its parameters.

        Raises:
            IndexError: If index is out of range.
            ValueError: If removing the last oscillator.
        """
        self._check_osc_index(index)
        if len(self._osc_params) == 1:
            raise ValueError("Cannot remove the last oscillator")
        removed = self._osc_params.pop(index)
        self._sync()
        return removed

    def set_param(self, name: str, value: Union[float, int]) -> None:
        """
        Set any parameter by name.

        Oscillator flat keys (``w0_0``, ``gamma_1``, ...) are routed through
        the oscillator list so the numba array stays consistent.
        """
        parsed = _parse_osc_key(name)
        if parsed is not None:
            prefix, idx = parsed
            self._check_osc_index(idx)
            current = list(self._osc_params[idx])
            current[_PARAM_MAP[prefix]] = float(value)
            _validate_oscillator(*current, label=str(idx))
            self._osc_params[idx] = tuple(current)
            self._sync()
            return

        super().set_param(name, value)

    def _check_osc_index(self, index: int) -> None:
        if not 0 <= index < len(self._osc_params):
            raise IndexError(
                f"Oscillator index {index} out of range "
                f"[0, {len(self._osc_params) - 1}]"
            )
