"""Shared builders for small in-memory drawing documents."""

import itertools

import pytest
from rdkit import Chem

from cdxtract.cdx_model import (
    Atom,
    Bond,
    BondOrder,
    Document,
    Fragment,
    NodeType,
    Page,
    Point2D,
    Rectangle,
    Text,
)
from cdxtract.identity_service import ReactionIdentity, StructureIdentity
from cdxtract.lookups import LookupTables

_ids = itertools.count(1)


def make_atom(element=6, x=0.0, y=0.0, label=None, **kwargs):
    kwargs.setdefault("position_2d", Point2D(x, y))
    if label is not None:
        kwargs.setdefault("text", Text(label))
    return Atom(element_number=element, id=next(_ids), **kwargs)


def make_bond(begin, end, order=BondOrder.SINGLE, **kwargs):
    return Bond(begin, end, order=order, id=next(_ids), **kwargs)


def bounds_of(atoms, pad=0.5):
    xs = [a.position_2d.x for a in atoms if a.position_2d is not None]
    ys = [a.position_2d.y for a in atoms if a.position_2d is not None]
    if not xs:
        return None
    return Rectangle(top=min(ys) - pad, left=min(xs) - pad, bottom=max(ys) + pad, right=max(xs) + pad)


def make_fragment(atoms, bonds, bounds=None):
    return Fragment(atoms=list(atoms), bonds=list(bonds), bounds=bounds or bounds_of(atoms), id=next(_ids))


def make_chain(elements, x0=0.0, y0=0.0, orders=None):
    """Linear fragment; ``orders`` gives the bond orders between neighbours."""
    atoms = [make_atom(e, x0 + i, y0 + (i % 2) * 0.5) for i, e in enumerate(elements)]
    orders = orders or [BondOrder.SINGLE] * (len(atoms) - 1)
    bonds = [make_bond(a, b, o) for a, b, o in zip(atoms, atoms[1:], orders)]
    return make_fragment(atoms, bonds)


def make_phenyl_nested(x0=0.0, y0=0.0):
    """Phenyl abbreviation body: six ring carbons and a connection point on the first."""
    ring = [make_atom(6, x0 + dx, y0 + dy) for dx, dy in
            [(0, 0), (1, 0.5), (1, 1.5), (0, 2), (-1, 1.5), (-1, 0.5)]]
    orders = [BondOrder.SINGLE, BondOrder.DOUBLE] * 3
    bonds = [make_bond(ring[i], ring[(i + 1) % 6], orders[i]) for i in range(6)]
    point = make_atom(0, x0, y0 - 1, node_type=NodeType.EXTERNAL_CONNECTION_POINT)
    bonds.append(make_bond(point, ring[0]))
    return make_fragment([point] + ring, bonds), ring


def make_nickname(label, nested, x=0.0, y=0.0):
    return make_atom(0, x, y, label=label, node_type=NodeType.NICKNAME, fragments=[nested])


def make_page(fragments=(), **kwargs):
    return Page(fragments=list(fragments), id=next(_ids), **kwargs)


def make_document(*pages):
    return Document(pages=list(pages))


class FakeIdentityService:
    """SMILES from RDKit; a made-up InChI unless the molecule has pseudo atoms."""

    def identify(self, mol):
        smiles = Chem.MolToSmiles(mol)
        pseudo = any(a.GetAtomicNum() == 0 for a in mol.GetAtoms())
        inchi = None if pseudo else f"InChI=1/fake/{smiles}"
        return StructureIdentity(
            smiles=smiles,
            inchi=inchi,
            inchikey=None if pseudo else f"KEY-{smiles}",
        )

    def descriptors(self, mol):
        return None

    def isolated_rings(self, mol):
        return []

    def identify_reaction(self, reactants, products, agents=()):
        parts = [".".join(Chem.MolToSmiles(m) for m in group) for group in (reactants, agents, products)]
        return ReactionIdentity(reaction_smiles=">".join(parts))


@pytest.fixture
def lookups():
    return LookupTables(
        abbreviations={
            "Ph": "*c1ccccc1",
            "Me": "*C",
            "OMe": "*OC",
            "H": "*[H]",
            "Cl": "*Cl",
        },
        agents={"THF": "C1CCOC1", "Et3N": "CCN(CC)CC"},
        unwanted_abbreviations={"Polymer"},
        unwanted_words={"reflux", "rt"},
    )


@pytest.fixture
def identity_service():
    return FakeIdentityService()
