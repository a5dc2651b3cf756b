"""Tests for multiple-group brackets."""

import pytest
from rdkit import Chem

from cdxtract.brackets import BracketCollector, expand_multiple_groups
from cdxtract.cdx_model import Bracket, BracketAttachment, BracketUsage, CrossingBond, Text
from cdxtract.errors import StructuralError
from cdxtract.fragment_to_rdkit import FragmentMolConverter

from conftest import make_atom, make_bond, make_fragment, make_page


def _hydroxy_chloro(repeat):
    """HO-[CH2]n-Cl with the CH2 in a multiple-group bracket."""
    o, c, cl = make_atom(8, 0, 0), make_atom(6, 1, 0), make_atom(17, 2, 0)
    oc, ccl = make_bond(o, c), make_bond(c, cl)
    fragment = make_fragment([o, c, cl], [oc, ccl])
    bracket = Bracket(
        usage=BracketUsage.MULTIPLE_GROUP,
        bracketed_objects=[c],
        attachments=[BracketAttachment([CrossingBond(ccl)])],
        repeat_count=repeat,
    )
    return fragment, bracket


class TestBracketCollector:
    def test_keeps_multiple_groups_on_atoms(self):
        fragment, bracket = _hydroxy_chloro(3)
        other = Bracket(usage=BracketUsage.SRU, bracketed_objects=list(fragment.atoms))
        on_text = Bracket(usage=BracketUsage.MULTIPLE_GROUP, bracketed_objects=[Text("x")])
        empty = Bracket(usage=BracketUsage.MULTIPLE_GROUP)
        page = make_page([fragment], brackets=[bracket, other, on_text, empty])
        assert BracketCollector(page).multiple_groups == [bracket]


class TestExpandMultipleGroups:
    def test_single_atom_repeat(self):
        fragment, bracket = _hydroxy_chloro(3)
        expanded = expand_multiple_groups(fragment, [bracket])
        assert len(expanded.atoms) == 5
        assert len(expanded.bonds) == 4

    def test_input_fragment_untouched(self):
        fragment, bracket = _hydroxy_chloro(3)
        crossing = fragment.bonds[1]
        begin = crossing.begin
        expand_multiple_groups(fragment, [bracket])
        assert len(fragment.atoms) == 3
        assert len(fragment.bonds) == 2
        assert crossing.begin is begin

    def test_bracket_of_other_fragment_ignored(self):
        fragment, _ = _hydroxy_chloro(3)
        _, foreign = _hydroxy_chloro(4)
        assert expand_multiple_groups(fragment, [foreign]) is fragment

    def test_expanded_chain_converts(self, lookups):
        fragment, bracket = _hydroxy_chloro(3)
        mol = FragmentMolConverter(lookups).convert(expand_multiple_groups(fragment, [bracket]))
        assert Chem.MolToSmiles(mol) == "OCCCCl"

    def test_structure_repeat_chains_copies(self, lookups):
        o, c1, c2, cl = make_atom(8, 0, 0), make_atom(6, 1, 0), make_atom(6, 2, 0), make_atom(17, 3, 0)
        first, inner, last = make_bond(o, c1), make_bond(c1, c2), make_bond(c2, cl)
        fragment = make_fragment([o, c1, c2, cl], [first, inner, last])
        bracket = Bracket(
            usage=BracketUsage.MULTIPLE_GROUP,
            bracketed_objects=[c1, c2],
            attachments=[BracketAttachment([CrossingBond(first)]), BracketAttachment([CrossingBond(last)])],
            repeat_count=2,
        )
        expanded = expand_multiple_groups(fragment, [bracket])
        assert len(expanded.atoms) == 6
        mol = FragmentMolConverter(lookups).convert(expanded)
        assert Chem.MolToSmiles(mol) == "OCCCCCl"


def _unbonded_pair():
    """C-[O O]2-C where the two bracketed oxygens share no bond."""
    c1, o1, o2, c2 = make_atom(6, 0, 0), make_atom(8, 1, 0), make_atom(8, 2, 0), make_atom(6, 3, 0)
    first, last = make_bond(c1, o1), make_bond(o2, c2)
    fragment = make_fragment([c1, o1, o2, c2], [first, last])
    bracket = Bracket(
        usage=BracketUsage.MULTIPLE_GROUP,
        bracketed_objects=[o1, o2],
        attachments=[BracketAttachment([CrossingBond(first)]), BracketAttachment([CrossingBond(last)])],
        repeat_count=2,
    )
    return fragment, bracket


class TestMalformedBrackets:
    def test_unbonded_members_raise(self):
        fragment, bracket = _unbonded_pair()
        with pytest.raises(StructuralError):
            expand_multiple_groups(fragment, [bracket])

    def test_input_fragment_untouched_on_error(self):
        fragment, bracket = _unbonded_pair()
        with pytest.raises(StructuralError):
            expand_multiple_groups(fragment, [bracket])
        assert len(fragment.bonds) == 2
        assert fragment.bonds[0].end is fragment.atoms[1]
