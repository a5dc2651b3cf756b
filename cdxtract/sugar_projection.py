"""
Recognise Haworth and chair drawings of rings, and sugar-like rings.

Projection detection is a 2D drawing heuristic. Walking a ring's atoms, each
vertex turns left or right. A Haworth ring is drawn as a convex polygon (all turns
the same way) with a flat front edge. A chair is a zig-zag whose six turns follow
one of a few fixed patterns. Anything else is not a projection.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from rdkit import Chem

from .definitions import (
    CARDINALITY_THRESHOLD,
    PROJECTION_RING_MAX,
    PROJECTION_RING_MIN,
    SUGAR_RING_MAX,
    SUGAR_RING_MIN,
)

logger = logging.getLogger(__name__)


class Turn(Enum):
    LEFT = "Left"
    RIGHT = "Right"


class WoundProjection(Enum):
    HAWORTH_CLOCKWISE = "HaworthClockwise"
    HAWORTH_ANTICLOCKWISE = "HaworthAnticlockwise"
    CHAIR_CLOCKWISE = "ChairClockwise"
    CHAIR_ANTICLOCKWISE = "ChairAnticlockwise"
    OTHER = "Other"


class Projection(Enum):
    HAWORTH = "Haworth"
    CHAIR = "Chair"


L, R = Turn.LEFT, Turn.RIGHT

SIGNATURES: Dict[Tuple[Turn, ...], WoundProjection] = {}
for _size in range(PROJECTION_RING_MIN, PROJECTION_RING_MAX + 1):
    SIGNATURES[(L,) * _size] = WoundProjection.HAWORTH_ANTICLOCKWISE
    SIGNATURES[(R,) * _size] = WoundProjection.HAWORTH_CLOCKWISE
for _turns in ((L, R, R, L, R, R), (R, L, R, R, L, R), (R, R, L, R, R, L)):
    SIGNATURES[_turns] = WoundProjection.CHAIR_CLOCKWISE
for _turns in ((R, L, L, R, L, L), (L, R, L, L, R, L), (L, L, R, L, L, R)):
    SIGNATURES[_turns] = WoundProjection.CHAIR_ANTICLOCKWISE

PROJECTION_KINDS = {
    Projection.HAWORTH: (WoundProjection.HAWORTH_CLOCKWISE, WoundProjection.HAWORTH_ANTICLOCKWISE),
    Projection.CHAIR: (WoundProjection.CHAIR_CLOCKWISE, WoundProjection.CHAIR_ANTICLOCKWISE),
}

Point = Tuple[float, float]


def turns(points: Sequence[Point]) -> Optional[List[Turn]]:
    """Left/right turn at each vertex of a closed polygon, or None if three points are collinear.

    Entry ``i`` is the turn at ``points[i]``.
    """
    n = len(points)
    result: List[Optional[Turn]] = [None] * n
    for i in range(1, n + 1):
        xa, ya = points[i - 1]
        xc, yc = points[i % n]
        xb, yb = points[(i + 1) % n]
        det = (xa - xc) * (yb - yc) - (ya - yc) * (xb - xc)
        if det == 0:
            return None
        result[i % n] = Turn.RIGHT if det < 0 else Turn.LEFT
    return result


def has_horizontal_edge(points: Sequence[Point], threshold: float = CARDINALITY_THRESHOLD) -> bool:
    n = len(points)
    return any(abs(points[i][1] - points[(i + 1) % n][1]) < threshold for i in range(n))


def classify_turns(sequence: Sequence[Turn]) -> WoundProjection:
    return SIGNATURES.get(tuple(sequence), WoundProjection.OTHER)


def ring_projection(points: Sequence[Point], kind: Projection) -> WoundProjection:
    """Classify one ring drawn at ``points`` (in ring order) against ``kind``."""
    if not PROJECTION_RING_MIN <= len(points) <= PROJECTION_RING_MAX:
        return WoundProjection.OTHER
    if kind is Projection.HAWORTH and not has_horizontal_edge(points):
        return WoundProjection.OTHER

    sequence = turns(points)
    if sequence is None:
        return WoundProjection.OTHER

    wound = classify_turns(sequence)
    return wound if wound in PROJECTION_KINDS[kind] else WoundProjection.OTHER


class SugarProjectionDetector:
    """Projection checks over the isolated rings of a molecule.

    Args:
        ring_finder: callable returning isolated rings as ordered atom-index cycles.
    """

    def __init__(self, ring_finder):
        self.ring_finder = ring_finder

    @staticmethod
    def _ring_points(mol: Chem.Mol, ring: Sequence[int]) -> List[Point]:
        conf = mol.GetConformer()
        points = []
        for idx in ring:
            pos = conf.GetAtomPosition(idx)
            points.append((pos.x, pos.y))
        return points

    def projections(self, mol: Chem.Mol, kind: Projection) -> List[WoundProjection]:
        if mol is None or mol.GetNumConformers() == 0:
            return []
        return [
            ring_projection(self._ring_points(mol, ring), kind)
            for ring in self.ring_finder(mol)
        ]

    def contains(self, mol: Chem.Mol, kind: Projection) -> bool:
        return any(p is not WoundProjection.OTHER for p in self.projections(mol, kind))

    def has_haworth_projection(self, mol: Chem.Mol) -> bool:
        return self.contains(mol, Projection.HAWORTH)

    def has_chair_projection(self, mol: Chem.Mol) -> bool:
        return self.contains(mol, Projection.CHAIR)


def is_sugar_ring(mol: Chem.Mol, ring: Sequence[int]) -> bool:
    """Topology check: a 5/6 ring of carbons and one oxygen carrying enough exocyclic oxygens."""
    size = len(ring)
    if not SUGAR_RING_MIN <= size <= SUGAR_RING_MAX:
        return False

    members = set(ring)
    for i in range(size):
        bond = mol.GetBondBetweenAtoms(ring[i], ring[(i + 1) % size])
        if bond is None or bond.GetBondType() != Chem.BondType.SINGLE or bond.GetIsAromatic():
            return False

    elements = [mol.GetAtomWithIdx(idx).GetAtomicNum() for idx in ring]
    if elements.count(8) != 1 or elements.count(6) != size - 1:
        return False

    exocyclic_oxygens = 0
    for idx in ring:
        atom = mol.GetAtomWithIdx(idx)
        if atom.GetAtomicNum() != 6:
            continue
        for bond in atom.GetBonds():
            other = bond.GetOtherAtom(atom)
            if other.GetIdx() in members:
                continue
            if other.GetAtomicNum() == 8 and bond.GetBondType() == Chem.BondType.SINGLE:
                exocyclic_oxygens += 1

    return exocyclic_oxygens >= (3 if size == 6 else 2)


def contains_sugar_rings(mol: Chem.Mol, rings) -> bool:
    return any(is_sugar_ring(mol, ring) for ring in rings)
