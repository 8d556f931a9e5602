import numpy as np
import pytest

from dielectric_models import (
    Drude,
    DrudeLorentz,
    Konstant,
    MaterialLibrary,
    MaterialLookupError,
    TableMaterial,
    parse_constant_material,
)


# ---------------------------------------------------------------------------
# Konstant
# ---------------------------------------------------------------------------
def test_konstant_dict_and_keywords_agree():
    a = Konstant(eps=4.4 + 0.1j, mu=2)
    b = Konstant(params={"eps": 4.4 + 0.1j, "mu": 2})
    assert a.eps_mu(1.0) == b.eps_mu(123.0) == (4.4 + 0.1j, 2 + 0j)


def test_konstant_requires_nonzero_eps():
    with pytest.raises(ValueError, match="eps"):
        Konstant()
    with pytest.raises(ValueError, match="nonzero"):
        Konstant(eps=0)


def test_set_param_drops_memoised_response():
    mat = Konstant(eps=2.0)
    assert mat.eps_mu(1.0)[0] == 2.0
    mat.set_param("eps", 3.0)
    assert mat.eps_mu(1.0)[0] == 3.0
    with pytest.raises(TypeError):
        mat.set_param("eps", "3")


# ---------------------------------------------------------------------------
# TableMaterial
# ---------------------------------------------------------------------------
def test_table_linear_interpolation():
    mat = TableMaterial([3.0, 1.0, 2.0], [3.0 + 0.3j, 1.0 + 0.1j, 2.0 + 0.2j])
    eps, mu = mat.eps_mu(1.5)
    assert eps == pytest.approx(1.5 + 0.15j)
    assert mu == 1.0


@pytest.mark.parametrize("kind", ["cubicspline", "pchip", "akima", "makima"])
def test_table_scipy_interpolators_hit_nodes(kind):
    w = np.linspace(1.0, 5.0, 6)
    eps = 2.0 + w + 0.1j * w**2
    mat = TableMaterial(w, eps, interpolation_type=kind)
    for wi, ei in zip(w, eps):
        assert mat.eps_mu(wi)[0] == pytest.approx(ei)


def test_table_factors_and_mu():
    mat = TableMaterial([1.0, 2.0], [2.0, 4.0], mu_data=[1.0, 3.0], eps_factor=0.5)
    eps, mu = mat.eps_mu(1.5)
    assert eps == pytest.approx(1.5)
    assert mu == pytest.approx(2.0)
    mat.set_param("mu_factor", 2.0)
    assert mat.eps_mu(1.5)[1] == pytest.approx(4.0)
    with pytest.raises(AttributeError):
        mat.set_param("bogus", 1.0)


def test_table_rejects_bad_input():
    with pytest.raises(ValueError, match="distinct"):
        TableMaterial([1.0, 1.0], [2.0, 3.0])
    with pytest.raises(ValueError, match="shape"):
        TableMaterial([1.0, 2.0], [2.0])
    with pytest.raises(ValueError, match="interpolation"):
        TableMaterial([1.0, 2.0], [2.0, 3.0], interpolation_type="nearest")
    with pytest.raises(ValueError, match="real frequencies"):
        TableMaterial([1.0, 2.0], [2.0, 3.0]).eps_mu(1.5 + 0.1j)


# ---------------------------------------------------------------------------
# Drude / Drude-Lorentz
# ---------------------------------------------------------------------------
def test_drude_permittivity():
    mat = Drude(omega_p=10.0, gamma_drude=0.5, epsilon_inf=2.0)
    omega = 3.0 + 0.1j
    expected = 2.0 - 100.0 / (omega**2 + 1j * 0.5 * omega)
    assert mat.eps_mu(omega)[0] == pytest.approx(expected)


def test_drude_singular_at_zero():
    with pytest.raises(ValueError, match="singular"):
        Drude(omega_p=10.0, gamma_drude=0.5).eps_mu(0.0)


def test_drude_lorentz_oscillators():
    mat = DrudeLorentz([(4.0, 0.2, 1.5)], epsilon_inf=1.0)
    omega = 2.0
    expected = 1.0 + 1.5 * 16.0 / (16.0 - 4.0 - 1j * omega * 0.2)
    assert mat.eps_mu(omega)[0] == pytest.approx(expected)
    # no Drude term, so the static limit is finite
    assert np.isfinite(mat.eps_mu(0.0)[0])

    mat.add_oscillator(6.0, 0.1, 0.5)
    assert mat.n_oscillators == 2
    assert mat.params["w0_1"] == 6.0

    mat.set_param("f0_0", 2.0)
    assert mat.params["f0_0"] == 2.0
    assert mat.remove_oscillator(1) == (6.0, 0.1, 0.5)
    assert "w0_1" not in mat.params
    with pytest.raises(ValueError):
        mat.remove_oscillator(0)
    with pytest.raises(IndexError):
        mat.set_param("w0_5", 1.0)


# ---------------------------------------------------------------------------
# MaterialLibrary
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("name, eps, mu", [
    ("CONST_EPS_11.7", 11.7, 1.0),
    ("const_eps_4", 4.0, 1.0),
    ("CONST_EPS_10+1j_MU_2", 10 + 1j, 2.0),
    ("CONST_EPS_2.5-0.1i", 2.5 - 0.1j, 1.0),
])
def test_inline_constants(name, eps, mu):
    mat = parse_constant_material(name)
    assert mat.eps_mu(1.0) == pytest.approx((eps, mu))


def test_inline_constant_errors():
    assert parse_constant_material("SiO2") is None
    with pytest.raises(MaterialLookupError, match="invalid constant material"):
        parse_constant_material("CONST_EPS_abc")
    with pytest.raises(MaterialLookupError):
        parse_constant_material("CONST_EPS_0")


def test_library_lookup():
    lib = MaterialLibrary({"SiO2": Konstant(eps=3.9)})

    assert lib.lookup("sio2") is lib.lookup("SIO2")
    assert lib.lookup("Vacuum").eps_mu(5.0) == (1.0, 1.0)
    assert "air" in lib and "CONST_EPS_3" in lib and "Foo" not in lib
    assert not lib.contains("CONST_EPS_x")
    assert len(lib) == 3
    assert sorted(lib) == ["AIR", "SIO2", "VACUUM"]
    with pytest.raises(MaterialLookupError, match="unknown material Foo"):
        lib.lookup("Foo")


def test_library_registration_rules():
    lib = MaterialLibrary(builtins=False)
    assert len(lib) == 0
    with pytest.raises(ValueError):
        lib.register("two words", Konstant(eps=2))
    with pytest.raises(TypeError):
        lib.register("X", 2.0)
