"""Tests for atom collection and bond splicing."""

import pytest

from cdxtract.cdx_model import BondOrder, NodeType
from cdxtract.definitions import UNINTERPRETABLE_LABEL_WARNING
from cdxtract.errors import StructuralError
from cdxtract.reconciler import AtomCollector, BondReconciler, attachment_atom, dot_allene_atoms, reconcile

from conftest import make_atom, make_bond, make_chain, make_fragment, make_nickname, make_phenyl_nested


def _toluene():
    nested, ring = make_phenyl_nested(0, 0)
    ph = make_nickname("Ph", nested, 0, 0)
    methyl = make_atom(6, 0, -3)
    outer_bond = make_bond(methyl, ph)
    return make_fragment([methyl, ph], [outer_bond]), nested, ring, outer_bond


class TestRoundTrip:
    def test_plain_fragment_keeps_bonds_in_order(self, lookups):
        fragment = make_chain([6, 6, 8, 6])
        assert BondReconciler(fragment, lookups).bonds == fragment.bonds

    def test_plain_fragment_keeps_atoms(self, lookups):
        fragment = make_chain([6, 7, 6])
        assert AtomCollector(fragment, lookups).atoms == fragment.atoms


class TestSplice:
    def test_outer_bond_moves_onto_attachment_atom(self, lookups):
        fragment, nested, ring, outer_bond = _toluene()
        rec = reconcile(fragment, lookups)
        assert outer_bond.end is ring[0]
        assert outer_bond in rec.bonds
        # six ring bonds plus the outer bond; the connection point bond is dropped
        assert len(rec.bonds) == 7

    def test_nested_atoms_replace_the_label(self, lookups):
        fragment, nested, ring, _ = _toluene()
        rec = reconcile(fragment, lookups)
        assert rec.atoms == [fragment.atoms[0]] + ring
        assert rec.nicknames == {"Ph": nested}
        assert rec.abbreviations == []

    def test_splice_is_idempotent(self, lookups):
        fragment, _, _, _ = _toluene()
        first = BondReconciler(fragment, lookups).bonds
        endpoints = [(b.begin, b.end) for b in first]
        second = BondReconciler(fragment, lookups).bonds
        assert second == first
        assert [(b.begin, b.end) for b in second] == endpoints

    def test_missing_connection_point(self, lookups):
        ring = make_chain([6, 6])
        label = make_nickname("Xy", ring)
        methyl = make_atom(6, 0, -3)
        fragment = make_fragment([methyl, label], [make_bond(methyl, label)])
        with pytest.raises(StructuralError):
            reconcile(fragment, lookups)

    def test_connection_point_without_bond(self, lookups):
        point = make_atom(0, 5, 5, node_type=NodeType.EXTERNAL_CONNECTION_POINT)
        nested = make_fragment([point, make_atom(6, 6, 6)], [])
        with pytest.raises(StructuralError):
            attachment_atom(nested)

    def test_two_connection_points(self, lookups):
        p1 = make_atom(0, 0, 0, node_type=NodeType.EXTERNAL_CONNECTION_POINT)
        p2 = make_atom(0, 2, 0, node_type=NodeType.EXTERNAL_CONNECTION_POINT)
        c = make_atom(6, 1, 0)
        nested = make_fragment([p1, c, p2], [make_bond(p1, c), make_bond(c, p2)])
        with pytest.raises(StructuralError):
            attachment_atom(nested)


class TestUnwantedAbbreviation:
    def test_nested_structure_dropped(self, lookups):
        nested, ring = make_phenyl_nested()
        polymer = make_nickname("Polymer", nested)
        methyl = make_atom(6, 0, -3)
        fragment = make_fragment([methyl, polymer], [make_bond(methyl, polymer)])

        rec = reconcile(fragment, lookups)
        assert not any(b in rec.bonds for b in nested.bonds)
        assert polymer in rec.atoms
        assert not any(a in rec.atoms for a in ring)
        assert rec.abbreviations == ["Polymer"]

    def test_deeply_nested_structure_dropped(self, lookups):
        inner, ring = make_phenyl_nested(0, 2)
        ph = make_nickname("Ph", inner, 0, 1)
        point, carbon = make_atom(0, 0, -1, node_type=NodeType.EXTERNAL_CONNECTION_POINT), make_atom(6, 0, 0)
        nested = make_fragment([point, carbon, ph], [make_bond(point, carbon), make_bond(carbon, ph)])
        polymer = make_nickname("Polymer", nested)
        methyl = make_atom(6, 0, -3)
        fragment = make_fragment([methyl, polymer], [make_bond(methyl, polymer)])

        rec = reconcile(fragment, lookups)
        assert rec.atoms == [methyl, polymer]
        assert not any(b in rec.bonds for b in inner.bonds + nested.bonds)
        assert not any(a in rec.atoms for a in ring)


class TestInclusionFilter:
    def test_uninterpretable_label_bond_kept(self, lookups):
        carbon = make_atom(6, 0, 0)
        label = make_atom(
            0, 1, 0, label="OTBS", node_type=NodeType.UNSPECIFIED,
            chemical_warning=UNINTERPRETABLE_LABEL_WARNING,
        )
        bond = make_bond(carbon, label)
        rec = reconcile(make_fragment([carbon, label], [bond]), lookups)
        assert rec.bonds == [bond]
        assert rec.abbreviations == ["OTBS"]

    def test_rgroup_bond_kept(self, lookups):
        carbon = make_atom(6, 0, 0)
        r = make_atom(0, 1, 0, label="R1", node_type=NodeType.GENERIC_NICKNAME)
        bond = make_bond(carbon, r)
        assert reconcile(make_fragment([carbon, r], [bond]), lookups).bonds == [bond]

    @pytest.mark.parametrize("label", ["R'", "X = Cl"])
    def test_label_starting_like_rgroup_bond_dropped(self, lookups, label):
        carbon = make_atom(6, 0, 0)
        r = make_atom(0, 1, 0, label=label, node_type=NodeType.GENERIC_NICKNAME)
        assert reconcile(make_fragment([carbon, r], [make_bond(carbon, r)]), lookups).bonds == []

    def test_plain_label_bond_dropped(self, lookups):
        carbon = make_atom(6, 0, 0)
        other = make_atom(0, 1, 0, label="Q", node_type=NodeType.UNSPECIFIED)
        rec = reconcile(make_fragment([carbon, other], [make_bond(carbon, other)]), lookups)
        assert rec.bonds == []


class TestDotAllene:
    def test_dot_carbon_between_double_bonds(self):
        left, centre, right = make_atom(6, 0, 0), make_atom(6, 1, 0, label="."), make_atom(6, 2, 0)
        fragment = make_fragment(
            [left, centre, right],
            [make_bond(left, centre, BondOrder.DOUBLE), make_bond(centre, right, BondOrder.DOUBLE)],
        )
        assert dot_allene_atoms(fragment) == frozenset({id(centre)})

    def test_dot_carbon_with_single_bonds(self):
        left, centre = make_atom(6, 0, 0), make_atom(6, 1, 0, label=".")
        fragment = make_fragment([left, centre], [make_bond(left, centre)])
        assert dot_allene_atoms(fragment) == frozenset()
