import pytest

from dielectric_models import Konstant, MaterialLibrary, MaterialLookupError


class CountingLookup:
    """MaterialLookup stub counting eps_mu() evaluations per material."""

    def __init__(self, materials):
        self._materials = {name.upper(): value for name, value in materials.items()}
        self.calls = []

    def lookup(self, material_name):
        key = material_name.upper()
        if key not in self._materials:
            raise MaterialLookupError(f"unknown material {material_name}")
        return _CountingHandle(self, key, self._materials[key])

    def contains(self, material_name):
        return material_name.upper() in self._materials


class _CountingHandle:

    def __init__(self, owner, name, eps):
        self._owner = owner
        self.name = name
        self._eps = complex(eps)

    def eps_mu(self, omega):
        self._owner.calls.append((self.name, omega))
        return self._eps, 1.0 + 0.0j


@pytest.fixture
def library():
    return MaterialLibrary({
        "SiO2": Konstant(eps=3.9, name="SiO2"),
        "Silicon": Konstant(eps=11.7 + 0.05j, name="Silicon"),
        "GaAs": Konstant(eps=12.9, name="GaAs"),
    })


@pytest.fixture
def counting_lookup():
    return CountingLookup({"VACUUM": 1.0, "SiO2": 3.9, "Silicon": 11.7})
