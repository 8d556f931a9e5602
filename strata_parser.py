# -*- coding: utf-8 -*-
"""
Strata: Layered substrates for surface-integral electromagnetics
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Module: strata_parser.py - Line-oriented substrate description grammar.

One statement per line; blank lines and lines whose first token starts
with ``#`` are skipped; keywords are case-insensitive.

    MEDIUM <material>       upper half-space material (standalone only)
    <z> GROUNDPLANE         ground-plane depth (a later line overwrites)
    <z> <material>          interface at depth z with <material> below it;
                            depths must strictly decrease line to line
    ENDSUBSTRATE            ends an embedded section (required there);
                            superfluous in a standalone file (warning)

Two front-ends share one state machine. They differ only in the
ParseMode they pass: which keywords are allowed and whether the
terminator is required.
"""

from __future__ import annotations

import math
import warnings
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, TextIO, Union

from loguru import logger

from strata_config import Verbosity
from strata_stack import (
    LayerStack,
    LayerStackBuilder,
    MaterialLookup,
    SubstrateError,
    SubstrateOrderError,
    SubstrateStructureError,
    SubstrateSyntaxError,
    SubstrateWarning,
)

TERMINATOR = "ENDSUBSTRATE"
MEDIUM = "MEDIUM"
GROUNDPLANE = "GROUNDPLANE"


@dataclass(slots=True, frozen=True)
class ParseMode:
    """Per-context grammar rules."""
    name: str
    allow_medium: bool
    terminator_required: bool


STANDALONE = ParseMode("standalone", allow_medium=True, terminator_required=False)
EMBEDDED = ParseMode("embedded", allow_medium=False, terminator_required=True)


class LineCounter:
    """
    Mutable line number shared with a host document parser.

    The embedded front-end starts counting from ``value`` and stores the
    number of the last line it consumed back into it.
    """
    __slots__ = ("value",)

    def __init__(self, value: int = 0) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"LineCounter({self.value})"


LineSource = Union[Iterable[str], TextIO]


class LayerStackParser:
    """
    Incremental parser building a LayerStack from description lines.

    Stops at the first error. Every error is a SubstrateError whose
    message carries ``<source>:<line>: `` when *source* is known.

    Parameters
    ----------
    materials : MaterialLookup
        Resolves material names to handles.
    mode : ParseMode
        STANDALONE or EMBEDDED.
    source : str, optional
        Name used to prefix diagnostics (file name or host document).
    verbosity : Verbosity
        SILENT suppresses the per-statement debug log.
    """

    def __init__(
        self,
        materials: MaterialLookup,
        mode: ParseMode,
        source: Optional[str] = None,
        verbosity: Verbosity = Verbosity.TERSE,
    ) -> None:
        self.materials = materials
        self.mode = mode
        self.source = source
        self.verbosity = verbosity

    def parse(
        self,
        lines: LineSource,
        counter: Optional[LineCounter] = None,
    ) -> LayerStack:
        line_num = counter.value if counter is not None else 0
        builder = LayerStackBuilder(self.materials)
        got_terminator = False

        try:
            for raw in _iter_lines(lines):
                line_num += 1
                tokens = raw.split()
                if not tokens or tokens[0].startswith("#"):
                    continue
                if tokens[0].upper() == TERMINATOR:
                    got_terminator = True
                    break
                self._statement(builder, tokens)
        except SubstrateError as exc:
            raise exc.with_location(self.source, line_num) from exc
        finally:
            if counter is not None:
                counter.value = line_num

        if got_terminator and not self.mode.terminator_required:
            where = f"{self.source}:{line_num}: " if self.source else ""
            warnings.warn(
                f"{where}{TERMINATOR} is not needed in substrate files",
                SubstrateWarning,
                stacklevel=3,
            )
        elif self.mode.terminator_required and not got_terminator:
            raise SubstrateStructureError(
                f"expected {TERMINATOR} before end of file", self.source
            )

        try:
            return builder.build()
        except SubstrateError as exc:
            raise exc.with_location(self.source, None) from exc

    # -- statements --------------------------------------------------------
    def _statement(self, builder: LayerStackBuilder, tokens: List[str]) -> None:
        if len(tokens) != 2:
            raise SubstrateSyntaxError(
                f"syntax error (expected 2 tokens, found {len(tokens)})"
            )
        head, name = tokens

        if head.upper() == MEDIUM:
            if not self.mode.allow_medium:
                raise SubstrateOrderError(
                    f"{MEDIUM} keyword forbidden in SUBSTRATE...{TERMINATOR} sections"
                )
            builder.set_top_medium(name)
            self._log(f"Setting upper half-space medium to {name}.")
            return

        z = _parse_depth(head)
        if name.upper() == GROUNDPLANE:
            builder.set_ground_plane(z)
            self._log(f" Ground plane at z={z:e}.")
        else:
            builder.add_layer(z, name)
            self._log(f" Layer #{builder.num_interfaces}: {name} at z={z:e}.")

    def _log(self, message: str) -> None:
        if self.verbosity > Verbosity.SILENT:
            logger.debug(message)


def _parse_depth(token: str) -> float:
    try:
        z = float(token)
    except ValueError:
        raise SubstrateSyntaxError(f"bad z-value {token}") from None
    if not math.isfinite(z):
        raise SubstrateSyntaxError(f"bad z-value {token}")
    return z


def _iter_lines(lines: LineSource) -> Iterator[str]:
    # readline() keeps an open host file positioned right after the
    # terminator line.
    readline = getattr(lines, "readline", None)
    if callable(readline):
        return iter(readline, "")
    return iter(lines)


# ---------------------------------------------------------------------------
# Front-ends
# ---------------------------------------------------------------------------
def parse_substrate_file(
    lines: LineSource,
    materials: MaterialLookup,
    source: Optional[str] = None,
    verbosity: Verbosity = Verbosity.TERSE,
) -> LayerStack:
    """Parse a standalone substrate description."""
    return LayerStackParser(materials, STANDALONE, source, verbosity).parse(lines)


def parse_substrate_section(
    lines: LineSource,
    materials: MaterialLookup,
    counter: Optional[LineCounter] = None,
    source: Optional[str] = None,
    verbosity: Verbosity = Verbosity.TERSE,
) -> LayerStack:
    """
    Parse the body of a ``SUBSTRATE ... ENDSUBSTRATE`` section.

    *lines* must be positioned just after the opening ``SUBSTRATE`` line;
    parsing consumes the terminator and nothing beyond it.
    """
    return LayerStackParser(materials, EMBEDDED, source, verbosity).parse(lines, counter)
