import io
import warnings

import pytest

from strata_parser import (
    EMBEDDED,
    STANDALONE,
    LayerStackParser,
    LineCounter,
    parse_substrate_file,
    parse_substrate_section,
)
from strata_stack import (
    SubstrateMaterialError,
    SubstrateOrderError,
    SubstrateStructureError,
    SubstrateSyntaxError,
    SubstrateWarning,
)


def lines(text):
    return io.StringIO(text)


# ---------------------------------------------------------------------------
# Embedded sections
# ---------------------------------------------------------------------------
def test_embedded_section_two_layers(library):
    stack = parse_substrate_section(lines("-1.0 SiO2\n-2.0 Silicon\nENDSUBSTRATE\n"), library)

    assert stack.num_interfaces == 2
    assert stack.num_layers == 3
    assert stack.material_names == ("VACUUM", "SiO2", "Silicon")
    assert stack.locate_layer(0.5) == 0
    assert stack.locate_layer(-1.5) == 1
    assert stack.locate_layer(-3.0) == 2


def test_embedded_ground_plane_only(library):
    stack = parse_substrate_section(lines("0.0 GROUNDPLANE\nENDSUBSTRATE\n"), library)

    assert stack.num_interfaces == 0
    assert stack.num_layers == 1
    assert stack.has_ground_plane
    assert stack.ground_plane == 0.0


def test_embedded_requires_terminator(library):
    with pytest.raises(SubstrateStructureError, match="expected ENDSUBSTRATE"):
        parse_substrate_section(lines("-1.0 SiO2\n-2.0 Silicon\n"), library, source="host.in")


def test_embedded_forbids_medium(library):
    with pytest.raises(SubstrateOrderError, match="MEDIUM keyword forbidden") as info:
        parse_substrate_section(
            lines("MEDIUM SiO2\nENDSUBSTRATE\n"), library, LineCounter(10), source="host.in"
        )
    assert info.value.line == 11
    assert str(info.value).startswith("host.in:11: ")


def test_embedded_stops_after_terminator(library):
    stream = lines("# layers\n\n-1.0 SiO2\nendsubstrate\nOBJECT sphere\n")
    counter = LineCounter(4)

    parse_substrate_section(stream, library, counter)

    assert counter.value == 8
    assert stream.readline() == "OBJECT sphere\n"


def test_line_counter_updated_on_failure(library):
    counter = LineCounter(20)
    with pytest.raises(SubstrateSyntaxError):
        parse_substrate_section(lines("-1.0 SiO2\n-2.0 Silicon extra\nENDSUBSTRATE\n"),
                                library, counter)
    assert counter.value == 22


# ---------------------------------------------------------------------------
# Standalone files
# ---------------------------------------------------------------------------
def test_standalone_medium_sets_top_layer(library):
    stack = parse_substrate_file(lines("medium GaAs\n-0.5 SiO2\n"), library)

    assert stack.material_names == ("GaAs", "SiO2")
    assert stack.layers[0].material is library.lookup("GaAs")


def test_standalone_terminator_warns(library):
    with pytest.warns(SubstrateWarning, match="ENDSUBSTRATE is not needed"):
        stack = parse_substrate_file(lines("-1.0 SiO2\nENDSUBSTRATE\n"), library, source="a.sub")
    assert stack.num_interfaces == 1


def test_standalone_without_terminator_is_silent(library):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        parse_substrate_file(["-1.0 SiO2\n"], library)


def test_comments_and_case(library):
    text = "  # a comment\n#another\n\n-1 sio2\n-3 GroundPlane\n"
    stack = parse_substrate_file(lines(text), library)

    assert stack.material_names == ("VACUUM", "sio2")
    assert stack.ground_plane == -3.0


def test_later_ground_plane_overwrites(library):
    stack = parse_substrate_file(lines("-1 SiO2\n-2 GROUNDPLANE\n-5 GROUNDPLANE\n"), library)
    assert stack.ground_plane == -5.0


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("text, count", [
    ("-1.0\n", 1),
    ("-1.0 SiO2 extra\n", 3),
    ("MEDIUM\n", 1),
])
def test_wrong_token_count(library, text, count):
    with pytest.raises(SubstrateSyntaxError, match=f"found {count}"):
        parse_substrate_file(lines(text), library)


@pytest.mark.parametrize("token", ["abc", "nan", "inf", "1.0.0"])
def test_bad_depth(library, token):
    with pytest.raises(SubstrateSyntaxError, match=f"bad z-value {token}"):
        parse_substrate_file(lines(f"{token} SiO2\n"), library)


def test_ascending_depths_fail(library):
    with pytest.raises(SubstrateOrderError, match="lies at or above previous layer") as info:
        parse_substrate_file(lines("-1.0 Silicon\n-0.5 SiO2\n"), library, source="bad.sub")
    assert info.value.line == 2


def test_equal_depths_fail(library):
    with pytest.raises(SubstrateOrderError, match="at or above previous layer") as info:
        parse_substrate_file(lines("-1.0 SiO2\n-1.0 Silicon\n-2.0 GaAs\n"), library)
    assert info.value.line == 2


def test_ground_plane_above_layers_fails(library):
    with pytest.raises(SubstrateOrderError, match="ground plane must lie below") as info:
        parse_substrate_file(lines("-1.0 SiO2\n-2.0 Silicon\n-1.5 GROUNDPLANE\n"),
                             library, source="gp.sub")
    assert info.value.source == "gp.sub"
    assert info.value.line is None


def test_ground_plane_on_deepest_interface_allowed(library):
    stack = parse_substrate_file(lines("-1.0 SiO2\n-1.0 GROUNDPLANE\n"), library)
    assert stack.ground_plane == -1.0


def test_unknown_material_is_located(library):
    with pytest.raises(SubstrateMaterialError, match=r"^x\.sub:2: unknown material Unobtainium$"):
        parse_substrate_file(lines("-1 SiO2\n-2 Unobtainium\n"), library, source="x.sub")


def test_parser_modes_are_reusable(library):
    parser = LayerStackParser(library, STANDALONE)
    first = parser.parse(["-1 SiO2\n"])
    second = parser.parse(["-2 Silicon\n"])
    assert first.interfaces == (-1.0,)
    assert second.interfaces == (-2.0,)
    assert EMBEDDED.terminator_required and not EMBEDDED.allow_medium
