"""
Drawn stereochemistry onto RDKit molecules.

Wedges and hashes become bond directions and chirality is perceived from the
conformer. Drawings whose coordinates are missing or stacked on top of each other
fall back to the R/S and E/Z descriptors stored on the drawn atoms and bonds.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from rdkit import Chem

from .cdx_model import Atom, AtomCIP, Bond, BondDisplay, BondStereo

logger = logging.getLogger(__name__)

# 记录RDKit原子/键对应的绘图原子/键位置, 便于回溯
DRAWN_ATOM_PROP = "_cdxAtom"
DRAWN_BOND_PROP = "_cdxBond"

# display -> (RDKit direction, wedge drawn from the end atom)
WEDGE_DIRECTIONS: Dict[BondDisplay, Tuple[Chem.BondDir, bool]] = {
    BondDisplay.WEDGE_BEGIN: (Chem.BondDir.BEGINWEDGE, False),
    BondDisplay.WEDGE_END: (Chem.BondDir.BEGINWEDGE, True),
    BondDisplay.WEDGED_HASH_BEGIN: (Chem.BondDir.BEGINDASH, False),
    BondDisplay.WEDGED_HASH_END: (Chem.BondDir.BEGINDASH, True),
    BondDisplay.HOLLOW_WEDGE_BEGIN: (Chem.BondDir.BEGINWEDGE, False),
    BondDisplay.HOLLOW_WEDGE_END: (Chem.BondDir.BEGINWEDGE, True),
    BondDisplay.WAVY: (Chem.BondDir.UNKNOWN, False),
}


def is_reversed(bond: Bond) -> bool:
    """True when the stereo centre of a wedge sits on the bond's end atom."""
    entry = WEDGE_DIRECTIONS.get(bond.display)
    return bool(entry and entry[1])


def bond_direction(bond: Bond) -> Optional[Chem.BondDir]:
    entry = WEDGE_DIRECTIONS.get(bond.display)
    return entry[0] if entry else None


def has_usable_coordinates(atoms: Iterable[Atom]) -> bool:
    """Every atom placed, and no two atoms on the same spot."""
    seen = set()
    for atom in atoms:
        if atom.position_3d is not None:
            key = (atom.position_3d.x, atom.position_3d.y, atom.position_3d.z)
        elif atom.position_2d is not None:
            key = (atom.position_2d.x, atom.position_2d.y)
        else:
            return False
        if key in seen:
            return False
        seen.add(key)
    return True


def _cip_code(atom: Chem.Atom) -> Optional[str]:
    return atom.GetProp("_CIPCode") if atom.HasProp("_CIPCode") else None


def _apply_cip_descriptors(mol: Chem.Mol, wanted: Dict[int, str]) -> None:
    for idx in wanted:
        mol.GetAtomWithIdx(idx).SetChiralTag(Chem.ChiralType.CHI_TETRAHEDRAL_CW)
    Chem.AssignStereochemistry(mol, cleanIt=True, force=True)

    inverted = False
    for idx, code in wanted.items():
        atom = mol.GetAtomWithIdx(idx)
        current = _cip_code(atom)
        if current is None:
            continue
        if current != code:
            atom.InvertChirality()
            inverted = True
    if inverted:
        Chem.AssignStereochemistry(mol, cleanIt=True, force=True)


def _ranked_neighbour(mol: Chem.Mol, atom_idx: int, exclude: int) -> Optional[int]:
    neighbours = [n for n in mol.GetAtomWithIdx(atom_idx).GetNeighbors() if n.GetIdx() != exclude]
    if not neighbours:
        return None
    ranked = sorted(
        neighbours,
        key=lambda n: int(n.GetProp("_CIPRank")) if n.HasProp("_CIPRank") else n.GetAtomicNum(),
        reverse=True,
    )
    return ranked[0].GetIdx()


def _apply_double_bond_descriptors(mol: Chem.Mol, wanted: Dict[int, BondStereo]) -> None:
    for bond_idx, stereo in wanted.items():
        bond = mol.GetBondWithIdx(bond_idx)
        if bond.GetBondType() != Chem.BondType.DOUBLE or bond.GetStereo() != Chem.BondStereo.STEREONONE:
            continue
        begin, end = bond.GetBeginAtomIdx(), bond.GetEndAtomIdx()
        first = _ranked_neighbour(mol, begin, end)
        second = _ranked_neighbour(mol, end, begin)
        if first is None or second is None:
            continue
        # 最高优先级取代基位于两侧即为 E
        bond.SetStereoAtoms(first, second)
        if stereo is BondStereo.E:
            bond.SetStereo(Chem.BondStereo.STEREOTRANS)
        elif stereo is BondStereo.Z:
            bond.SetStereo(Chem.BondStereo.STEREOCIS)


def _drawn_index(mol: Chem.Mol, atoms: List[Atom]) -> Dict[int, int]:
    index = {}
    for rd_atom in mol.GetAtoms():
        if rd_atom.HasProp(DRAWN_ATOM_PROP):
            index[id(atoms[rd_atom.GetIntProp(DRAWN_ATOM_PROP)])] = rd_atom.GetIdx()
    return index


def _drawn_bonds(mol: Chem.Mol, bonds: List[Bond]) -> List[Tuple[Bond, int]]:
    return [
        (bonds[rd_bond.GetIntProp(DRAWN_BOND_PROP)], rd_bond.GetIdx())
        for rd_bond in mol.GetBonds()
        if rd_bond.HasProp(DRAWN_BOND_PROP)
    ]


def assign_stereo(mol: Chem.Mol, atoms: List[Atom], bonds: List[Bond]) -> None:
    """Perceive stereo on a sanitized molecule built from ``atoms`` and ``bonds``.

    Atoms and bonds of ``mol`` carry the position of their drawn counterpart in
    ``DRAWN_ATOM_PROP`` / ``DRAWN_BOND_PROP``; wedge bond directions are already set.
    """
    atom_index = _drawn_index(mol, atoms)
    bonds = _drawn_bonds(mol, bonds)
    wavy_centres = [
        atom_index[id(bond.begin)]
        for bond, _ in bonds
        if bond.display is BondDisplay.WAVY and id(bond.begin) in atom_index
    ]

    if mol.GetNumConformers() and has_usable_coordinates(atoms):
        Chem.AssignChiralTypesFromBondDirs(mol)
        if mol.GetConformer().Is3D():
            Chem.AssignStereochemistryFrom3D(mol)
        else:
            Chem.DetectBondStereochemistry(mol)
            Chem.AssignStereochemistry(mol, cleanIt=True, force=True)
    else:
        logger.debug("Coordinates unusable, applying drawn stereo descriptors")
        wanted = {
            atom_index[id(a)]: a.stereochemistry.value
            for a in atoms
            if a.stereochemistry in (AtomCIP.R, AtomCIP.S) and id(a) in atom_index
        }
        Chem.AssignStereochemistry(mol, cleanIt=True, force=True)
        if wanted:
            _apply_cip_descriptors(mol, wanted)

    descriptors = {idx: b.stereo for b, idx in bonds if b.stereo in (BondStereo.E, BondStereo.Z)}
    if descriptors:
        _apply_double_bond_descriptors(mol, descriptors)

    for idx in wavy_centres:
        mol.GetAtomWithIdx(idx).SetChiralTag(Chem.ChiralType.CHI_UNSPECIFIED)
    if wavy_centres:
        Chem.AssignStereochemistry(mol, cleanIt=True, force=True)
