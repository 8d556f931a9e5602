import math

import numpy as np
import pytest

from dielectric_models import Konstant, MaterialLibrary
from strata_stack import (
    NO_GROUND_PLANE,
    DictMaterialLookup,
    LayerStack,
    LayerStackBuilder,
    MaterialLookup,
    SubstrateError,
    SubstrateMaterialError,
    SubstrateOrderError,
    wrap_material_source,
)


def make_stack(interfaces, ground_plane=NO_GROUND_PLANE):
    n = len(interfaces) + 1
    names = [f"M{i}" for i in range(n)]
    mats = [Konstant(eps=1.0 + i) for i in range(n)]
    return LayerStack(names, mats, interfaces, ground_plane)


# ---------------------------------------------------------------------------
# locate_layer
# ---------------------------------------------------------------------------
def test_locate_layer_single_layer():
    stack = make_stack([])
    assert stack.locate_layer(1e9) == 0
    assert stack.locate_layer(-1e9) == 0


def test_locate_layer_boundary_belongs_below():
    interfaces = [2.0, 0.0, -1.5, -4.0]
    stack = make_stack(interfaces)
    for i, z in enumerate(interfaces):
        assert stack.locate_layer(z) == i + 1
        assert stack.locate_layer(np.nextafter(z, math.inf)) == i


def test_locate_layer_is_monotonic():
    rng = np.random.default_rng(1234)
    for _ in range(50):
        interfaces = np.sort(rng.uniform(-10.0, 10.0, rng.integers(1, 8)))[::-1]
        interfaces = np.unique(interfaces)[::-1]
        stack = make_stack(interfaces.tolist())
        z = np.sort(rng.uniform(-12.0, 12.0, 200))[::-1]
        idx = [stack.locate_layer(v) for v in z]
        assert all(a <= b for a, b in zip(idx, idx[1:]))


def test_locate_layers_matches_scalar():
    stack = make_stack([1.0, -1.0, -2.0])
    z = np.array([[3.0, 1.0, 0.0], [-1.0, -1.5, -2.0]])
    idx = stack.locate_layers(z)

    assert idx.shape == z.shape
    expected = [[stack.locate_layer(v) for v in row] for row in z]
    np.testing.assert_array_equal(idx, expected)


# ---------------------------------------------------------------------------
# LayerStack construction
# ---------------------------------------------------------------------------
def test_layer_bounds():
    stack = make_stack([-1.0, -2.0], ground_plane=-3.0)
    assert stack.layer_bounds(0) == (-1.0, math.inf)
    assert stack.layer_bounds(1) == (-2.0, -1.0)
    assert stack.layer_bounds(2) == (-3.0, -2.0)
    assert stack[1].thickness == pytest.approx(1.0)
    assert stack[0].semi_infinite
    assert stack[1].contains(-1.0) and not stack[1].contains(-2.0)


def test_no_ground_plane_reports_none():
    stack = make_stack([0.0])
    assert not stack.has_ground_plane
    assert stack.ground_plane is None
    assert stack.get_state()["ground_plane"] is None


@pytest.mark.parametrize("interfaces", [[-1.0, -0.5], [0.0, 0.0]])
def test_stack_rejects_non_decreasing(interfaces):
    with pytest.raises(SubstrateOrderError):
        make_stack(interfaces)


def test_stack_rejects_high_ground_plane():
    with pytest.raises(SubstrateOrderError):
        make_stack([-1.0, -2.0], ground_plane=-1.5)


def test_stack_rejects_count_mismatch():
    with pytest.raises(ValueError, match="interfaces"):
        LayerStack(["A", "B"], [Konstant(eps=1), Konstant(eps=2)], [])


# ---------------------------------------------------------------------------
# LayerStackBuilder
# ---------------------------------------------------------------------------
def test_builder_defaults_to_vacuum():
    builder = LayerStackBuilder(DictMaterialLookup({"SiO2": 3.9}))
    builder.add_layer(-1.0, "SiO2")
    stack = builder.build()

    assert stack.material_names == ("VACUUM", "SiO2")
    assert stack.materials[0].eps_mu(1.0) == (1.0, 1.0)


def test_builder_checks_order_before_lookup():
    builder = LayerStackBuilder(DictMaterialLookup({"SiO2": 3.9}))
    builder.add_layer(-1.0, "SiO2")
    with pytest.raises(SubstrateOrderError):
        builder.add_layer(0.0, "Missing")
    assert builder.num_interfaces == 1


def test_builder_wraps_lookup_errors():
    builder = LayerStackBuilder(MaterialLibrary())
    with pytest.raises(SubstrateMaterialError, match="unknown material Foo") as info:
        builder.add_layer(-1.0, "Foo")
    assert isinstance(info.value, SubstrateError)
    assert isinstance(info.value, ValueError)


# ---------------------------------------------------------------------------
# Material sources
# ---------------------------------------------------------------------------
def test_dict_lookup_is_case_insensitive():
    lookup = DictMaterialLookup({"SiO2": 3.9, "Gold": Konstant(eps=-20 + 1j)})
    assert lookup.contains("sio2")
    assert lookup.lookup("SIO2").eps_mu(1.0)[0] == 3.9
    assert lookup.lookup("gold").eps_mu(1.0)[0] == -20 + 1j


def test_dict_lookup_rejects_non_materials():
    with pytest.raises(TypeError):
        DictMaterialLookup({"bad": "3.9"})


def test_wrap_material_source():
    library = MaterialLibrary()
    assert wrap_material_source(library) is library
    assert isinstance(wrap_material_source(None), MaterialLibrary)
    assert isinstance(wrap_material_source({"A": 2.0}), DictMaterialLookup)
    assert isinstance(wrap_material_source({"A": 2.0}), MaterialLookup)
    with pytest.raises(TypeError):
        wrap_material_source(42)
