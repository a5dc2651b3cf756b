"""
Multiple-group brackets (repeat units such as ``[CH2]3``).

``BracketCollector`` gathers the qualifying brackets of a page and
``expand_multiple_groups`` writes the repeats out on a working copy of a fragment,
so that ``-[CH2]3-`` becomes three chained CH2 atoms before conversion.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .cdx_model import Atom, Bond, Bracket, BracketUsage, Fragment, Page
from .cdx_visitor import CDVisitor, walk
from .errors import StructuralError

logger = logging.getLogger(__name__)


class BracketCollector(CDVisitor):
    """MultipleGroup brackets whose first bracketed object is an atom."""

    def __init__(self, page: Page):
        self.multiple_groups: List[Bracket] = []
        walk(page, self)

    def visit_bracket(self, bracket: Bracket) -> None:
        if (
            bracket.usage is BracketUsage.MULTIPLE_GROUP
            and bracket.bracketed_objects
            and isinstance(bracket.bracketed_objects[0], Atom)
        ):
            self.multiple_groups.append(bracket)


class _WorkingBonds:
    """工作副本中可能被重连的键, 首次访问时复制"""

    def __init__(self, fragment: Fragment):
        self.fragment = fragment
        self._copies: Dict[int, Bond] = {}

    def get(self, bond: Bond) -> Bond:
        copy = self._copies.get(id(bond))
        if copy is not None:
            return copy
        copy = bond.copy()
        for i, existing in enumerate(self.fragment.bonds):
            if existing is bond:
                self.fragment.bonds[i] = copy
                break
        self._copies[id(bond)] = copy
        return copy


def _first_crossing_bond(bracket: Bracket) -> Optional[Bond]:
    for attachment in bracket.attachments:
        if attachment.crossing_bonds:
            return attachment.crossing_bonds[0].bond
    return None


def _expand_single_atom(fragment: Fragment, bracket: Bracket, atom: Atom, bonds: _WorkingBonds) -> None:
    crossing = _first_crossing_bond(bracket)
    if crossing is None:
        return
    crossing = bonds.get(crossing)

    repeat = int(bracket.repeat_count)
    previous = atom
    # 绘制出的基团本身已算一次
    for i in range(repeat - 1):
        copy = previous.copy()
        fragment.atoms.append(copy)
        link = crossing.copy()
        link.begin, link.end = previous, copy
        fragment.bonds.append(link)
        previous = copy
        if i == repeat - 2:
            if crossing.begin is atom:
                crossing.begin = copy
            else:
                crossing.end = copy


def _reconnect_internal(bracket: Bracket, atom_map: Dict[int, Atom], fragment: Fragment, bonds: _WorkingBonds) -> None:
    first = bonds.get(bracket.attachments[0].crossing_bonds[0].bond)
    last = bonds.get(bracket.attachments[1].crossing_bonds[0].bond)

    first_copy = atom_map.get(id(first.begin)) or atom_map.get(id(first.end))
    last_copy = atom_map.get(id(last.begin)) or atom_map.get(id(last.end))
    if first_copy is None or last_copy is None:
        raise StructuralError(f"Multiple group bracket {bracket.id} has a crossing bond on an unbonded atom")
    if id(last.begin) in atom_map:
        last_origin, outside = last.begin, last.end
    else:
        last_origin, outside = last.end, last.begin

    last.begin, last.end = last_origin, first_copy

    closing = last.copy()
    closing.begin, closing.end = last_copy, outside
    fragment.bonds.append(closing)


def _expand_structure(fragment: Fragment, bracket: Bracket, bracket_atoms: List[Atom], bonds: _WorkingBonds) -> None:
    members = {id(a) for a in bracket_atoms}
    internal = [b for b in fragment.bonds if id(b.begin) in members and id(b.end) in members]
    chained = len(bracket.attachments) == 2 and all(a.crossing_bonds for a in bracket.attachments)

    for _ in range(int(bracket.repeat_count) - 1):
        atom_map: Dict[int, Atom] = {}
        for bond in internal:
            begin = atom_map.setdefault(id(bond.begin), bond.begin.copy())
            end = atom_map.setdefault(id(bond.end), bond.end.copy())
            copy = bond.copy()
            copy.begin, copy.end = begin, end
            fragment.bonds.append(copy)
        fragment.atoms.extend(atom_map.values())

        # exactly two crossing bonds: chain the copies; none: the copy stands alone
        if chained:
            _reconnect_internal(bracket, atom_map, fragment, bonds)


def expand_multiple_groups(fragment: Fragment, brackets: List[Bracket]) -> Fragment:
    """Return ``fragment`` with its multiple-group brackets written out.

    The input fragment is left untouched; if no bracket applies it is returned as is.
    """
    relevant = []
    for bracket in brackets:
        bracket_atoms = [o for o in bracket.bracketed_objects if isinstance(o, Atom)]
        if not bracket_atoms or not any(a is bracket_atoms[0] for a in fragment.atoms):
            continue
        relevant.append((bracket, bracket_atoms))
    if not relevant:
        return fragment

    work = fragment.working_copy()
    bonds = _WorkingBonds(work)
    for bracket, bracket_atoms in relevant:
        logger.debug("Expanding multiple group x%s in fragment %s", bracket.repeat_count, fragment.id)
        if len(bracket_atoms) == 1:
            _expand_single_atom(work, bracket, bracket_atoms[0], bonds)
        else:
            _expand_structure(work, bracket, bracket_atoms, bonds)
    return work
