"""
Flatten a drawn fragment into the atoms and bonds of one molecular graph.

Abbreviations are drawn as a single atom that owns a nested fragment. The nested
fragment marks where it hangs on its parent with an external connection point;
the outer bond to the abbreviation atom is rewired onto the nested atom bonded to
that point, and the nested atoms and bonds take the abbreviation's place.

Labels on the unwanted-abbreviation list are not spliced: the label atom stays as
a pseudo atom and the nested structure is dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Set

from .cdx_model import Atom, Bond, BondOrder, Fragment, NodeType
from .cdx_visitor import CDVisitor, walk
from .definitions import RGROUP_LABEL_PATTERN
from .errors import StructuralError
from .lookups import LookupTables

logger = logging.getLogger(__name__)


def dot_allene_atoms(fragment: Fragment) -> FrozenSet[int]:
    """Ids of carbons drawn as ``.`` between two double bonds (the allene centre)."""
    result = set()
    for atom in fragment.atoms:
        if atom.element_number != 6 or atom.display_text != ".":
            continue
        doubles = sum(1 for b in fragment.bonds_of(atom) if b.order is BondOrder.DOUBLE)
        if doubles == 2:
            result.add(id(atom))
    return frozenset(result)


def _is_element(atom: Atom, plain_elements: FrozenSet[int]) -> bool:
    return atom.node_type is NodeType.ELEMENT or id(atom) in plain_elements


def attachment_atom(nested: Fragment) -> Atom:
    """The atom of ``nested`` that bonds to its single external connection point.

    Raises:
        StructuralError: no or several connection points, or no bond at the point.
    """
    points = [a for a in nested.atoms if a.node_type is NodeType.EXTERNAL_CONNECTION_POINT]
    if not points:
        raise StructuralError(f"Nested fragment {nested.id} has no external connection point")
    if len(points) > 1:
        raise StructuralError(
            f"Nested fragment {nested.id} has {len(points)} external connection points"
        )
    point = points[0]
    for bond in nested.bonds:
        if bond.touches(point):
            return bond.other(point)
    raise StructuralError(
        f"External connection point {point.id} of nested fragment {nested.id} has no bond"
    )


class _NestedContent(CDVisitor):
    """收集某原子下所有嵌套层级的原子和键 id"""

    def __init__(self, atom: Atom):
        self.atoms: Set[int] = set()
        self.bonds: Set[int] = set()
        for nested in atom.fragments:
            walk(nested, self)

    def visit_atom(self, atom: Atom) -> None:
        self.atoms.add(id(atom))

    def visit_bond(self, bond: Bond) -> None:
        self.bonds.add(id(bond))


class AtomCollector(CDVisitor):
    """Atoms of the flattened graph, plus the labels met on the way.

    Attributes:
        atoms: collected atoms in traversal order.
        abbreviations: labels kept as pseudo atoms, in order of appearance.
        nicknames: label -> nested fragment for abbreviations that were expanded.
    """

    def __init__(self, fragment: Fragment, lookups: LookupTables, plain_elements: FrozenSet[int] = frozenset()):
        self.lookups = lookups
        self.plain_elements = plain_elements
        self.atoms: List[Atom] = []
        self.abbreviations: Dict[str, None] = {}
        self.nicknames: Dict[str, Fragment] = {}
        self._seen: Set[int] = set()
        self._skipped: Set[int] = set()
        self._nested: Set[int] = set()
        walk(fragment, self)

    def _keep(self, atom: Atom) -> None:
        if id(atom) not in self._seen:
            self._seen.add(id(atom))
            self.atoms.append(atom)

    def visit_atom(self, atom: Atom) -> None:
        if id(atom) in self._skipped:
            return
        if atom.node_type is NodeType.EXTERNAL_CONNECTION_POINT and id(atom) in self._nested:
            return

        label = atom.display_text
        unwanted = self.lookups.is_unwanted_abbreviation(label)

        if atom.fragments and not unwanted:
            for nested in atom.fragments:
                self._nested.update(id(a) for a in nested.atoms)
            if label is not None:
                self.nicknames.setdefault(label, atom.fragments[0])
            return

        if atom.fragments:
            self._skipped.update(_NestedContent(atom).atoms)

        if _is_element(atom, self.plain_elements) and not unwanted:
            self._keep(atom)
        elif label is not None:
            self.abbreviations.setdefault(label, None)
            self._keep(atom)
        elif atom.node_type in (NodeType.EXTERNAL_CONNECTION_POINT, NodeType.MULTI_ATTACHMENT):
            self._keep(atom)
        elif atom.chemical_warning is not None:
            self._keep(atom)


class BondReconciler(CDVisitor):
    """Bonds of the flattened graph, with abbreviation bonds spliced onto real atoms.

    Outer bonds to an abbreviation atom are rewritten in place; re-running over
    the same fragment changes nothing further.
    """

    def __init__(
        self,
        fragment: Fragment,
        lookups: LookupTables,
        plain_elements: FrozenSet[int] = frozenset(),
        keep_connection_points: bool = False,
    ):
        self.lookups = lookups
        self.plain_elements = plain_elements
        # 片段自身的连接点, 单独转换时保留
        self._own_points: Set[int] = set()
        if keep_connection_points:
            self._own_points = {
                id(a) for a in fragment.atoms if a.node_type is NodeType.EXTERNAL_CONNECTION_POINT
            }
        self.bonds: List[Bond] = []
        self._seen: Set[int] = set()
        self._skipped: Set[int] = set()
        walk(fragment, self)

    def visit_atom(self, atom: Atom) -> None:
        if atom.fragments and self.lookups.is_unwanted_abbreviation(atom.display_text):
            self._skipped.update(_NestedContent(atom).bonds)

    def _resolve(self, atom: Atom) -> Atom:
        while atom.fragments and not self.lookups.is_unwanted_abbreviation(atom.display_text):
            atom = attachment_atom(atom.fragments[0])
        return atom

    def visit_bond(self, bond: Bond) -> None:
        if id(bond) in self._skipped or id(bond) in self._seen:
            return

        begin = self._resolve(bond.begin)
        if begin is not bond.begin:
            logger.debug("Splicing bond %s begin onto %r", bond.id, begin)
            bond.begin = begin
        end = self._resolve(bond.end)
        if end is not bond.end:
            logger.debug("Splicing bond %s end onto %r", bond.id, end)
            bond.end = end

        if self.is_retained(bond):
            self._seen.add(id(bond))
            self.bonds.append(bond)

    def _is_loose_end(self, atom: Atom) -> bool:
        label = atom.display_text
        if label is not None and RGROUP_LABEL_PATTERN.fullmatch(label):
            return True
        if atom.node_type is NodeType.MULTI_ATTACHMENT:
            return True
        return not _is_element(atom, self.plain_elements) and atom.chemical_warning is not None

    def is_retained(self, bond: Bond) -> bool:
        if id(bond.begin) in self._own_points or id(bond.end) in self._own_points:
            return True
        if _is_element(bond.begin, self.plain_elements) and _is_element(bond.end, self.plain_elements):
            return True
        return self._is_loose_end(bond.begin) or self._is_loose_end(bond.end)


@dataclass
class ReconciledFragment:
    fragment: Fragment
    atoms: List[Atom] = field(default_factory=list)
    bonds: List[Bond] = field(default_factory=list)
    abbreviations: List[str] = field(default_factory=list)
    nicknames: Dict[str, Fragment] = field(default_factory=dict)
    plain_elements: FrozenSet[int] = frozenset()


def reconcile(fragment: Fragment, lookups: LookupTables, keep_connection_points: bool = False) -> ReconciledFragment:
    """Collect atoms, splice bonds and check that every bond lands on a collected atom.

    Raises:
        StructuralError: malformed abbreviation or dangling bond endpoint.
    """
    plain_elements = dot_allene_atoms(fragment)
    bonds = BondReconciler(fragment, lookups, plain_elements, keep_connection_points).bonds
    atoms = AtomCollector(fragment, lookups, plain_elements)

    known = {id(a) for a in atoms.atoms}
    for bond in bonds:
        for atom in (bond.begin, bond.end):
            if id(atom) not in known:
                raise StructuralError(
                    f"Bond {bond.id} of fragment {fragment.id} ends on uncollected atom {atom!r}"
                )

    return ReconciledFragment(
        fragment=fragment,
        atoms=atoms.atoms,
        bonds=bonds,
        abbreviations=list(atoms.abbreviations),
        nicknames=atoms.nicknames,
        plain_elements=plain_elements,
    )
