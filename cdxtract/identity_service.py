"""
基于RDKit的结构与反应标识符（SMILES、InChI、反应SMILES）和分子描述符
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from rdkit import Chem
from rdkit.Chem import Crippen, Descriptors, rdChemReactions, rdinchi, rdMolDescriptors
from rdkit.Chem import inchi as rdkit_inchi

from .definitions import AUX_INFO_MAX_LENGTH, DEFAULT_INCHI_OPTIONS
from .errors import IdentityServiceError
from .xtract_models import MolecularDescriptors

logger = logging.getLogger(__name__)

# reaction -> {"rinchi", "long_key", "short_key", "web_key", "aux_info"}
RInChIBackend = Callable[[rdChemReactions.ChemicalReaction], Dict[str, str]]


@dataclass(frozen=True)
class StructureIdentity:
    smiles: Optional[str] = None
    extended_smiles: Optional[str] = None
    inchi: Optional[str] = None
    inchikey: Optional[str] = None
    aux_info: Optional[str] = None
    molecular_formula: Optional[str] = None


@dataclass(frozen=True)
class ReactionIdentity:
    reaction_smiles: Optional[str] = None
    rinchi: Optional[str] = None
    long_rinchikey: Optional[str] = None
    short_rinchikey: Optional[str] = None
    web_rinchikey: Optional[str] = None
    aux_info: Optional[str] = None


def has_distinct_coordinates(mol: Chem.Mol) -> bool:
    if mol.GetNumConformers() == 0:
        return False
    conf = mol.GetConformer()
    seen = set()
    for i in range(mol.GetNumAtoms()):
        pos = conf.GetAtomPosition(i)
        key = (round(pos.x, 4), round(pos.y, 4), round(pos.z, 4))
        if key in seen:
            return False
        seen.add(key)
    return True


def isolated_rings(mol: Chem.Mol) -> List[Tuple[int, ...]]:
    """与其他环不共享原子的SSSR环, 以有序的原子索引环返回"""
    rings = [tuple(r) for r in Chem.GetSSSR(mol)]
    result = []
    for i, ring in enumerate(rings):
        members = set(ring)
        if any(members.intersection(other) for j, other in enumerate(rings) if j != i):
            continue
        result.append(ring)
    return result


def largest_pi_system(mol: Chem.Mol) -> int:
    """Atom count of the largest connected set of conjugated bonds."""
    parent = list(range(mol.GetNumAtoms()))

    def find(i):
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    in_system = set()
    for bond in mol.GetBonds():
        if not bond.GetIsConjugated():
            continue
        a, b = bond.GetBeginAtomIdx(), bond.GetEndAtomIdx()
        in_system.update((a, b))
        parent[find(a)] = find(b)

    sizes: Dict[int, int] = {}
    for idx in in_system:
        root = find(idx)
        sizes[root] = sizes.get(root, 0) + 1
    return max(sizes.values(), default=0)


class RDKitIdentityService:
    """基于RDKit生成规范SMILES、InChI系列、分子式和描述符

    Args:
        inchi_options: options passed to the InChI library.
        aux_info_max_length: AuxInfo at or above this length is dropped.
        rinchi_backend: optional callable producing RInChI strings for reactions.
    """

    def __init__(
        self,
        inchi_options: str = DEFAULT_INCHI_OPTIONS,
        aux_info_max_length: int = AUX_INFO_MAX_LENGTH,
        rinchi_backend: Optional[RInChIBackend] = None,
    ):
        self.inchi_options = inchi_options
        self.aux_info_max_length = aux_info_max_length
        self.rinchi_backend = rinchi_backend

    def smiles(self, mol: Chem.Mol) -> str:
        try:
            return Chem.MolToSmiles(mol)
        except (ValueError, RuntimeError) as exc:
            logger.warning("Canonical SMILES failed (%s), falling back to kekulized form", exc)
        try:
            return Chem.MolToSmiles(mol, kekuleSmiles=True, canonical=False)
        except (ValueError, RuntimeError) as exc:
            raise IdentityServiceError(f"Cannot write SMILES: {exc}") from exc

    def extended_smiles(self, mol: Chem.Mol) -> Optional[str]:
        """CXSMILES with coordinates, or None when the drawing has no distinct coordinates."""
        if not has_distinct_coordinates(mol):
            return None
        try:
            return Chem.MolToCXSmiles(mol)
        except (ValueError, RuntimeError) as exc:
            logger.warning("Extended SMILES failed: %s", exc)
            return None

    def inchi(self, mol: Chem.Mol) -> Tuple[str, str]:
        """Return ``(inchi, aux_info)``.

        Raises:
            IdentityServiceError: the InChI library reported an error or returned nothing.
        """
        inchi, retcode, message, _log, aux_info = rdinchi.MolToInchi(mol, self.inchi_options)
        if retcode not in (0, 1) or not inchi:
            raise IdentityServiceError(f"InChI generation failed: {message or 'no InChI produced'}")
        if retcode == 1 and message:
            logger.warning("InChI warning: %s", message)
        return inchi, aux_info

    def identify(self, mol: Chem.Mol) -> StructureIdentity:
        """Identifiers of ``mol``. Only SMILES is required; the InChI family may be None.

        Raises:
            IdentityServiceError: no SMILES could be written.
        """
        smiles = self.smiles(mol)
        inchi = inchikey = aux_info = None
        try:
            inchi, aux_info = self.inchi(mol)
            inchikey = rdkit_inchi.InchiToInchiKey(inchi)
        except IdentityServiceError as exc:
            logger.warning("No InChI for %s: %s", smiles, exc)
        if aux_info is not None and len(aux_info) >= self.aux_info_max_length:
            logger.debug("Dropping AuxInfo of %d characters", len(aux_info))
            aux_info = None

        return StructureIdentity(
            smiles=smiles,
            extended_smiles=self.extended_smiles(mol),
            inchi=inchi,
            inchikey=inchikey,
            aux_info=aux_info or None,
            molecular_formula=rdMolDescriptors.CalcMolFormula(mol),
        )

    def descriptors(self, mol: Chem.Mol) -> MolecularDescriptors:
        return MolecularDescriptors(
            atom_count=mol.GetNumAtoms(),
            aromatic_atom_count=sum(1 for a in mol.GetAtoms() if a.GetIsAromatic()),
            aromatic_bond_count=sum(1 for b in mol.GetBonds() if b.GetIsAromatic()),
            hbond_donor_count=rdMolDescriptors.CalcNumHBD(mol),
            hbond_acceptor_count=rdMolDescriptors.CalcNumHBA(mol),
            largest_pi_system=largest_pi_system(mol),
            average_weight=Descriptors.MolWt(mol),
            exact_mass=Descriptors.ExactMolWt(mol),
            xlogp=Crippen.MolLogP(mol),
        )

    def isolated_rings(self, mol: Chem.Mol) -> List[Tuple[int, ...]]:
        return isolated_rings(mol)

    def identify_reaction(
        self,
        reactants: Sequence[Chem.Mol],
        products: Sequence[Chem.Mol],
        agents: Sequence[Chem.Mol] = (),
    ) -> ReactionIdentity:
        """Reaction SMILES, plus the RInChI family when a backend is configured."""
        rxn = rdChemReactions.ChemicalReaction()
        for mol in reactants:
            rxn.AddReactantTemplate(mol)
        for mol in agents:
            rxn.AddAgentTemplate(mol)
        for mol in products:
            rxn.AddProductTemplate(mol)

        try:
            reaction_smiles = rdChemReactions.ReactionToSmiles(rxn)
        except (ValueError, RuntimeError) as exc:
            raise IdentityServiceError(f"Cannot write reaction SMILES: {exc}") from exc

        if self.rinchi_backend is None:
            return ReactionIdentity(reaction_smiles=reaction_smiles)

        try:
            rinchi = self.rinchi_backend(rxn)
        except (ValueError, RuntimeError) as exc:
            logger.warning("RInChI generation failed for %s: %s", reaction_smiles, exc)
            return ReactionIdentity(reaction_smiles=reaction_smiles)

        return ReactionIdentity(
            reaction_smiles=reaction_smiles,
            rinchi=rinchi.get("rinchi"),
            long_rinchikey=rinchi.get("long_key"),
            short_rinchikey=rinchi.get("short_key"),
            web_rinchikey=rinchi.get("web_key"),
            aux_info=rinchi.get("aux_info"),
        )
