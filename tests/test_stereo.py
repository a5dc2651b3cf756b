"""Tests for drawn stereochemistry."""

from rdkit import Chem

from cdxtract.cdx_model import AtomCIP, BondDisplay, BondOrder, BondStereo
from cdxtract.fragment_to_rdkit import FragmentMolConverter
from cdxtract.stereo import bond_direction, has_usable_coordinates, is_reversed

from conftest import make_atom, make_bond, make_fragment


def _unplaced(element, **kwargs):
    return make_atom(element, position_2d=None, **kwargs)


def _halomethane(display=BondDisplay.SOLID, placed=True, cip=AtomCIP.NONE):
    """C with F, Cl and Br; the bond to F carries ``display``."""
    if placed:
        c = make_atom(6, 0, 0, stereochemistry=cip)
        f, cl, br = make_atom(9, 0, -1), make_atom(17, 1, 0.5), make_atom(35, -1, 0.5)
    else:
        c = _unplaced(6, stereochemistry=cip)
        f, cl, br = _unplaced(9), _unplaced(17), _unplaced(35)
    bonds = [make_bond(c, f, display=display), make_bond(c, cl), make_bond(c, br)]
    return make_fragment([c, f, cl, br], bonds)


class TestWedges:
    def test_directions(self):
        c1, c2 = make_atom(6), make_atom(6, 1, 0)
        assert bond_direction(make_bond(c1, c2, display=BondDisplay.WEDGED_HASH_BEGIN)) == Chem.BondDir.BEGINDASH
        assert bond_direction(make_bond(c1, c2)) is None

    def test_end_wedges_are_reversed(self):
        c1, c2 = make_atom(6), make_atom(6, 1, 0)
        assert is_reversed(make_bond(c1, c2, display=BondDisplay.WEDGE_END))
        assert not is_reversed(make_bond(c1, c2, display=BondDisplay.WEDGE_BEGIN))


class TestUsableCoordinates:
    def test_distinct_positions(self):
        assert has_usable_coordinates([make_atom(6, 0, 0), make_atom(6, 1, 0)])

    def test_stacked_atoms(self):
        assert not has_usable_coordinates([make_atom(6, 0, 0), make_atom(6, 0, 0)])

    def test_unplaced_atom(self):
        assert not has_usable_coordinates([make_atom(6, 0, 0), _unplaced(6)])


class TestAssignStereo:
    def test_wedge_makes_stereocentre(self, lookups):
        mol = FragmentMolConverter(lookups).convert(_halomethane(BondDisplay.WEDGE_BEGIN))
        centre = mol.GetAtomWithIdx(0)
        assert centre.GetChiralTag() != Chem.ChiralType.CHI_UNSPECIFIED
        assert centre.GetProp("_CIPCode") in ("R", "S")

    def test_plain_drawing_has_no_stereocentre(self, lookups):
        mol = FragmentMolConverter(lookups).convert(_halomethane())
        assert mol.GetAtomWithIdx(0).GetChiralTag() == Chem.ChiralType.CHI_UNSPECIFIED

    def test_wavy_bond_clears_centre(self, lookups):
        mol = FragmentMolConverter(lookups).convert(_halomethane(BondDisplay.WAVY))
        assert mol.GetAtomWithIdx(0).GetChiralTag() == Chem.ChiralType.CHI_UNSPECIFIED

    def test_descriptor_fallback(self, lookups):
        for cip in (AtomCIP.R, AtomCIP.S):
            mol = FragmentMolConverter(lookups).convert(_halomethane(placed=False, cip=cip))
            assert mol.GetNumConformers() == 0
            assert mol.GetAtomWithIdx(0).GetProp("_CIPCode") == cip.value

    def test_double_bond_descriptor_fallback(self, lookups):
        atoms = [_unplaced(6) for _ in range(4)]
        double = make_bond(atoms[1], atoms[2], BondOrder.DOUBLE, stereo=BondStereo.E)
        bonds = [make_bond(atoms[0], atoms[1]), double, make_bond(atoms[2], atoms[3])]
        mol = FragmentMolConverter(lookups).convert(make_fragment(atoms, bonds))
        assert mol.GetBondWithIdx(1).GetStereo() == Chem.BondStereo.STEREOTRANS
