"""
Replace a labelled pseudo atom of an RDKit molecule by a real substituent.

Substituents are SMILES with ``*`` marking where they attach, e.g. ``*OC`` for OMe.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from rdkit import Chem
from rdkit.Chem import AllChem
from rdkit.Geometry import Point3D

logger = logging.getLogger(__name__)

# 伪原子上保存绘图标签的属性名
LABEL_PROP = "atomLabel"


def atom_label(atom: Chem.Atom) -> Optional[str]:
    if atom.HasProp(LABEL_PROP):
        return atom.GetProp(LABEL_PROP)
    return None


def labelled_dummies(mol: Chem.Mol) -> List[int]:
    return [a.GetIdx() for a in mol.GetAtoms() if a.GetAtomicNum() == 0 and a.HasProp(LABEL_PROP)]


def parse_smiles(smiles: str) -> Optional[Chem.Mol]:
    """Parse SMILES keeping explicit hydrogens such as the one in ``*[H]``."""
    if not smiles:
        return None
    params = Chem.SmilesParserParams()
    params.removeHs = False
    return Chem.MolFromSmiles(smiles, params)


def substituent_mol(smiles: str) -> Optional[Chem.Mol]:
    """解析取代基SMILES, RDKit无法解析时返回None"""
    return parse_smiles(smiles)


def star_indices(mol: Chem.Mol) -> List[int]:
    return [a.GetIdx() for a in mol.GetAtoms() if a.GetAtomicNum() == 0 and not a.HasProp(LABEL_PROP)]


def _position(mol: Chem.Mol, idx: int) -> Point3D:
    if mol.GetNumConformers() == 0:
        return Point3D(0.0, 0.0, 0.0)
    pos = mol.GetConformer().GetAtomPosition(idx)
    return Point3D(pos.x, pos.y, pos.z)


def _swap_atom(rw: Chem.RWMol, idx: int, replacement: Chem.Atom) -> None:
    new_atom = Chem.Atom(replacement.GetAtomicNum())
    new_atom.SetFormalCharge(replacement.GetFormalCharge())
    if replacement.GetIsotope():
        new_atom.SetIsotope(replacement.GetIsotope())
    rw.ReplaceAtom(idx, new_atom)


def replace_pseudo_atom(rw: Chem.RWMol, idx: int, substituent: Chem.Mol) -> Chem.RWMol:
    """Put ``substituent`` in place of atom ``idx`` and return the edited molecule.

    A one-atom substituent swaps the element in place. Otherwise the substituent is
    joined at the neighbour of its ``*`` (or its first atom when it has none), every
    bond of the replaced atom moves onto that anchor, and the pseudo atom is removed.
    Indices above ``idx`` shift down by one in the multi-atom case.
    """
    stars = star_indices(substituent)
    heavy = [a for a in substituent.GetAtoms() if a.GetIdx() not in stars]
    if not heavy:
        raise ValueError("Substituent has no atoms besides its attachment point")

    if len(heavy) == 1:
        _swap_atom(rw, idx, heavy[0])
        return rw

    if stars:
        star = substituent.GetAtomWithIdx(stars[0])
        anchor = star.GetNeighbors()[0].GetIdx()
    else:
        anchor = 0

    sub = Chem.Mol(substituent)
    if rw.GetNumConformers():
        AllChem.Compute2DCoords(sub)
        # 将取代基居中到被替换原子的位置
        pos = _position(rw, idx)
        origin = _position(sub, anchor)
        offset = Point3D(pos.x - origin.x, pos.y - origin.y, pos.z - origin.z)
        combined = Chem.RWMol(Chem.CombineMols(rw, sub, offset))
    else:
        combined = Chem.RWMol(Chem.CombineMols(rw, sub))

    shift = rw.GetNumAtoms()
    for bond in rw.GetAtomWithIdx(idx).GetBonds():
        neighbour = bond.GetOtherAtomIdx(idx)
        if combined.GetBondBetweenAtoms(neighbour, anchor + shift) is not None:
            continue
        combined.AddBond(neighbour, anchor + shift, bond.GetBondType())
        # a wedge drawn from the neighbour keeps pointing at the substituent
        if bond.GetBeginAtomIdx() == neighbour and bond.GetBondDir() != Chem.BondDir.NONE:
            combined.GetBondBetweenAtoms(neighbour, anchor + shift).SetBondDir(bond.GetBondDir())

    for remove in sorted([idx] + [s + shift for s in stars[:1]], reverse=True):
        combined.RemoveAtom(remove)
    return combined
