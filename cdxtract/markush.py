"""
Expand R-group placeholders into one concrete molecule per combination.
"""

from __future__ import annotations

import itertools
import logging
from typing import Dict, List, Optional, Sequence

from rdkit import Chem
from rdkit.Chem import AllChem

from .definitions import RGROUP_LABEL_PATTERN
from .fragment_to_rdkit import sanitize_with_warnings
from .lookups import LookupTables
from .substituents import atom_label, labelled_dummies, replace_pseudo_atom, star_indices, substituent_mol

logger = logging.getLogger(__name__)


def residue_labels(mol: Chem.Mol) -> List[str]:
    """Distinct R-group labels carried by pseudo atoms, in atom order."""
    labels: Dict[str, None] = {}
    for idx in labelled_dummies(mol):
        label = atom_label(mol.GetAtomWithIdx(idx))
        if label and RGROUP_LABEL_PATTERN.search(label):
            labels.setdefault(label, None)
    return list(labels)


def _residue_atoms(mol: Chem.Mol, label: str) -> List[int]:
    return [idx for idx in labelled_dummies(mol) if atom_label(mol.GetAtomWithIdx(idx)) == label]


def _bridge(rw: Chem.RWMol, first: int, second: int, substituent: Chem.Mol) -> Chem.RWMol:
    """Join two residue atoms through a substituent with two attachment points."""
    stars = star_indices(substituent)[:2]
    anchors = [substituent.GetAtomWithIdx(s).GetNeighbors()[0].GetIdx() for s in stars]
    shift = rw.GetNumAtoms()
    if rw.GetNumConformers():
        substituent = Chem.Mol(substituent)
        AllChem.Compute2DCoords(substituent)
    combined = Chem.RWMol(Chem.CombineMols(rw, substituent))

    for residue, anchor in zip((first, second), anchors):
        for bond in rw.GetAtomWithIdx(residue).GetBonds():
            neighbour = bond.GetOtherAtomIdx(residue)
            if neighbour in (first, second):
                continue
            if combined.GetBondBetweenAtoms(neighbour, anchor + shift) is None:
                combined.AddBond(neighbour, anchor + shift, bond.GetBondType())

    for idx in sorted([first, second] + [s + shift for s in stars], reverse=True):
        combined.RemoveAtom(idx)
    return combined


def _nearest_residue(mol: Chem.Mol, idx: int, candidates: Sequence[int]) -> Optional[int]:
    others = [c for c in candidates if c != idx]
    if not others:
        return None
    distances = Chem.GetDistanceMatrix(mol)
    return min(others, key=lambda c: distances[idx][c])


class MarkushExpander:
    """Substitute R-group placeholders with the alternatives defined on the page.

    Args:
        rgroups: identifier -> substituent labels, e.g. ``{"R": ["H", "Me"]}``.
        lookups: abbreviation table used to resolve substituent labels.
    """

    def __init__(self, rgroups: Dict[str, List[str]], lookups: LookupTables):
        self.rgroups = rgroups
        self.lookups = lookups

    def _substituent(self, label: str) -> Optional[Chem.Mol]:
        smiles = self.lookups.abbreviation_smiles(label) or label
        return substituent_mol(smiles)

    def _apply(self, rw: Chem.RWMol, identifier: str, label: str) -> Optional[Chem.RWMol]:
        substituent = self._substituent(label)
        if substituent is None:
            logger.warning("Cannot read substituent %r for %s", label, identifier)
            return None

        if len(star_indices(substituent)) >= 2:
            residues = _residue_atoms(rw, identifier)
            while residues:
                first = residues[-1]
                second = _nearest_residue(rw, first, residues)
                if second is None:
                    logger.warning("Substituent %r for %s needs two attachment atoms", label, identifier)
                    return None
                rw = _bridge(rw, first, second, substituent)
                residues = _residue_atoms(rw, identifier)
            return rw

        residues = _residue_atoms(rw, identifier)
        while residues:
            rw = replace_pseudo_atom(rw, residues[-1], substituent)
            residues = _residue_atoms(rw, identifier)
        return rw

    def expand(self, mol: Chem.Mol) -> List[Chem.Mol]:
        """One molecule per combination of alternatives; ``[mol]`` when nothing applies."""
        present = set(residue_labels(mol))
        identifiers = [i for i in self.rgroups if i in present and self.rgroups[i]]
        if not identifiers:
            return [mol]

        variants = []
        for combination in itertools.product(*(self.rgroups[i] for i in identifiers)):
            rw: Optional[Chem.RWMol] = Chem.RWMol(mol)
            for identifier, label in zip(identifiers, combination):
                try:
                    rw = self._apply(rw, identifier, label)
                except (ValueError, RuntimeError) as exc:
                    logger.warning("Cannot substitute %r for %s: %s", label, identifier, exc)
                    rw = None
                if rw is None:
                    break
            if rw is None:
                logger.info("Skipping variant %s", dict(zip(identifiers, combination)))
                continue

            variant = rw.GetMol()
            for message in sanitize_with_warnings(variant):
                logger.warning("Variant %s: %s", dict(zip(identifiers, combination)), message)
            variants.append(variant)
        return variants
