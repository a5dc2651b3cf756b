"""Tests for ring projection and sugar ring detection."""

import math

from rdkit import Chem
from rdkit.Chem import AllChem

from cdxtract.identity_service import isolated_rings
from cdxtract.sugar_projection import (
    Projection,
    SIGNATURES,
    SugarProjectionDetector,
    Turn,
    WoundProjection,
    classify_turns,
    contains_sugar_rings,
    is_sugar_ring,
    ring_projection,
    turns,
)

L, R = Turn.LEFT, Turn.RIGHT

HEXAGON = [(0, 0), (2, 0), (3, 1), (2, 2), (0, 2), (-1, 1)]


class TestTurns:
    def test_convex_polygon_turns_one_way(self):
        assert set(turns(HEXAGON)) == {R}
        assert set(turns(list(reversed(HEXAGON)))) == {L}

    def test_collinear_points(self):
        assert turns([(0, 0), (1, 0), (2, 0), (1, 1)]) is None


class TestHaworth:
    def test_flat_edged_hexagon(self):
        assert ring_projection(HEXAGON, Projection.HAWORTH) is WoundProjection.HAWORTH_CLOCKWISE
        assert ring_projection(HEXAGON[::-1], Projection.HAWORTH) is WoundProjection.HAWORTH_ANTICLOCKWISE

    def test_tilted_hexagon_is_not_haworth(self):
        angles = [math.radians(15 + 60 * k) for k in range(6)]
        points = [(math.cos(a), math.sin(a)) for a in angles][::-1]
        assert ring_projection(points, Projection.HAWORTH) is WoundProjection.OTHER

    def test_too_small_ring(self):
        assert ring_projection([(0, 0), (1, 0), (0, 1)], Projection.HAWORTH) is WoundProjection.OTHER

    def test_convex_ring_is_not_a_chair(self):
        assert ring_projection(HEXAGON, Projection.CHAIR) is WoundProjection.OTHER


class TestChair:
    def test_chair_signature(self):
        assert classify_turns((L, R, R, L, R, R)) is WoundProjection.CHAIR_CLOCKWISE
        assert classify_turns((R, L, L, R, L, L)) is WoundProjection.CHAIR_ANTICLOCKWISE

    def test_rotations_are_listed(self):
        sequence = (L, R, R, L, R, R)
        for shift in range(3):
            rotated = sequence[shift:] + sequence[:shift]
            assert SIGNATURES[rotated] is WoundProjection.CHAIR_CLOCKWISE

    def test_other_pattern(self):
        assert classify_turns((L, R, R, L, R, L)) is WoundProjection.OTHER


class TestDetector:
    def test_no_conformer(self):
        detector = SugarProjectionDetector(isolated_rings)
        assert detector.projections(Chem.MolFromSmiles("C1CCOCC1"), Projection.HAWORTH) == []

    def test_uses_ring_finder(self):
        mol = Chem.MolFromSmiles("C1CCOCC1")
        AllChem.Compute2DCoords(mol)
        seen = []

        def finder(m):
            seen.append(m)
            return []

        assert not SugarProjectionDetector(finder).has_chair_projection(mol)
        assert seen == [mol]


class TestSugarRings:
    @staticmethod
    def _rings(mol):
        return mol.GetRingInfo().AtomRings()

    def test_pyranose_like_ring(self):
        mol = Chem.MolFromSmiles("OC1COC(O)C(O)C1")
        assert contains_sugar_rings(mol, self._rings(mol))

    def test_too_few_hydroxyls(self):
        mol = Chem.MolFromSmiles("OC1COCC(O)C1")
        assert not contains_sugar_rings(mol, self._rings(mol))

    def test_aromatic_ring(self):
        mol = Chem.MolFromSmiles("Oc1ccoc1O")
        assert not any(is_sugar_ring(mol, ring) for ring in self._rings(mol))
