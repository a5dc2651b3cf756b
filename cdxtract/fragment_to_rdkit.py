"""
将绘图片段转换为RDKit Mol对象

主要步骤：
1. 展平片段（见 ``reconciler``），每个收集到的原子对应一个RDKit原子
2. 每条保留的键对应一个RDKit键，写入坐标和立体化学
3. 已知缩写替换回真实取代基
4. sanitize，问题记录为警告而不抛出
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from rdkit import Chem
from rdkit.Geometry import Point3D

from .cdx_model import Atom, BondOrder, Fragment, NodeType, Radical
from .definitions import RGROUP_LABEL_PATTERN
from .lookups import LookupTables
from .reconciler import ReconciledFragment, reconcile
from .stereo import DRAWN_ATOM_PROP, DRAWN_BOND_PROP, assign_stereo, bond_direction, is_reversed
from .substituents import LABEL_PROP, atom_label, labelled_dummies, replace_pseudo_atom, substituent_mol

logger = logging.getLogger(__name__)

BOND_TYPE_MAP: Dict[BondOrder, Chem.BondType] = {
    BondOrder.SINGLE: Chem.BondType.SINGLE,
    BondOrder.DOUBLE: Chem.BondType.DOUBLE,
    BondOrder.TRIPLE: Chem.BondType.TRIPLE,
    BondOrder.QUADRUPLE: Chem.BondType.QUADRUPLE,
    BondOrder.ONE_HALF: Chem.BondType.AROMATIC,
    BondOrder.DATIVE: Chem.BondType.DATIVE,
    BondOrder.IONIC: Chem.BondType.IONIC,
    BondOrder.HYDROGEN: Chem.BondType.HYDROGEN,
    BondOrder.THREE_CENTER: Chem.BondType.THREECENTER,
    # 查询键级没有唯一含义
    BondOrder.SINGLE_OR_DOUBLE: Chem.BondType.UNSPECIFIED,
    BondOrder.SINGLE_OR_AROMATIC: Chem.BondType.UNSPECIFIED,
    BondOrder.DOUBLE_OR_AROMATIC: Chem.BondType.UNSPECIFIED,
    BondOrder.ANY: Chem.BondType.UNSPECIFIED,
}

HYDROGEN_ISOTOPES = {"D": 2, "T": 3}

RADICAL_ELECTRONS = {
    Radical.SINGLET: 2,
    Radical.DOUBLET: 1,
    Radical.TRIPLET: 2,
}

CHARGE_MIN, CHARGE_MAX = -128, 127


@dataclass
class MolConversion:
    """片段转换结果: Mol 以及转换过程中记录的缩写和警告"""

    mol: Chem.Mol
    reconciled: ReconciledFragment
    # SMILES -> 片段中出现的缩写标签
    abbreviations: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


def sanitize_with_warnings(mol: Chem.Mol, atom_labels: Optional[Dict[int, str]] = None) -> List[str]:
    """执行RDKit sanitize, 收集化学问题而不是抛出异常

    Args:
        mol: 原地 sanitize 的分子
        atom_labels: 可选的 原子索引 -> 绘图标签, 附加到消息中

    返回:
        可读的警告信息列表, sanitize 成功时为空
    """
    messages: List[str] = []
    flags = Chem.SanitizeMol(mol, catchErrors=True)
    if flags == Chem.SanitizeFlags.SANITIZE_NONE:
        return messages

    for problem in Chem.DetectChemistryProblems(mol) or []:
        msg = f"Chemistry problem: {problem.GetType()}"
        if problem.GetType() == "AtomValenceException":
            indices = [problem.GetAtomIdx()]
        elif problem.GetType() == "KekulizeException":
            indices = list(problem.GetAtomIndices())
        else:
            indices = []
        labels = [atom_labels[i] for i in indices if atom_labels and i in atom_labels]
        if indices:
            msg += f" at atoms {indices}"
        if labels:
            msg += f" ({', '.join(labels)})"
        messages.append(msg)

    if not messages:
        try:
            Chem.SanitizeMol(Chem.Mol(mol))
        except (ValueError, RuntimeError) as exc:
            detail = str(exc)
            match = re.search(r"atom # (\d+)", detail)
            if match and atom_labels and int(match.group(1)) in atom_labels:
                detail = f"{detail} ({atom_labels[int(match.group(1))]})"
            messages.append(f"Sanitize detail: {detail}")
        else:
            messages.append(f"Sanitize failed: {flags}")

    # 保证分子仍可输出SMILES
    mol.UpdatePropertyCache(strict=False)
    return messages


class FragmentMolConverter:
    """将绘图片段转换为RDKit Mol对象

    Args:
        lookups: label tables for abbreviation resubstitution and the denylist.
        resubstitute: replace labelled pseudo atoms by their table structure.
    """

    def __init__(self, lookups: LookupTables, resubstitute: bool = True):
        self.lookups = lookups
        self.resubstitute = resubstitute

    def convert(self, fragment: Fragment) -> Chem.Mol:
        return self.build(fragment).mol

    def build(self, fragment: Fragment, keep_connection_points: bool = False) -> MolConversion:
        """Reconcile and convert ``fragment``.

        Raises:
            StructuralError: the fragment cannot be flattened.
        """
        rec = reconcile(fragment, self.lookups, keep_connection_points=keep_connection_points)
        rw = Chem.RWMol()
        index: Dict[int, int] = {}

        for pos, atom in enumerate(rec.atoms):
            rd_atom = self._make_atom(atom, id(atom) in rec.plain_elements)
            rd_atom.SetIntProp(DRAWN_ATOM_PROP, pos)
            index[id(atom)] = rw.AddAtom(rd_atom)

        for pos, bond in enumerate(rec.bonds):
            begin, end = index[id(bond.begin)], index[id(bond.end)]
            if is_reversed(bond):
                begin, end = end, begin
            if begin == end or rw.GetBondBetweenAtoms(begin, end) is not None:
                logger.debug("Skipping duplicate bond %s in fragment %s", bond.id, fragment.id)
                continue
            rw.AddBond(begin, end, BOND_TYPE_MAP.get(bond.order, Chem.BondType.SINGLE))
            rd_bond = rw.GetBondBetweenAtoms(begin, end)
            rd_bond.SetIntProp(DRAWN_BOND_PROP, pos)
            if rd_bond.GetBondType() == Chem.BondType.AROMATIC:
                rd_bond.SetIsAromatic(True)
                rw.GetAtomWithIdx(begin).SetIsAromatic(True)
                rw.GetAtomWithIdx(end).SetIsAromatic(True)
            direction = bond_direction(bond)
            if direction is not None:
                rd_bond.SetBondDir(direction)

        self._set_conformer(rw, rec.atoms)

        abbreviations = self._abbreviation_map(rec)
        if self.resubstitute:
            rw = self._resubstitute(rw)

        mol = rw.GetMol()
        labels = {a.GetIdx(): atom_label(a) for a in mol.GetAtoms() if atom_label(a)}
        warnings = sanitize_with_warnings(mol, labels)
        for message in warnings:
            logger.warning("Fragment %s: %s", fragment.id, message)

        if warnings:
            Chem.FastFindRings(mol)
        try:
            assign_stereo(mol, rec.atoms, rec.bonds)
        except (ValueError, RuntimeError) as exc:
            logger.warning("Fragment %s: stereo perception failed: %s", fragment.id, exc)
            warnings.append(f"Stereo perception failed: {exc}")
        return MolConversion(mol=mol, reconciled=rec, abbreviations=abbreviations, warnings=warnings)

    def _make_atom(self, atom: Atom, plain_element: bool) -> Chem.Atom:
        if atom.node_type is NodeType.EXTERNAL_CONNECTION_POINT:
            return Chem.Atom(0)

        label = atom.display_text
        is_element = (atom.node_type is NodeType.ELEMENT and not atom.is_abbreviation) or plain_element

        if not is_element and label in HYDROGEN_ISOTOPES:
            rd_atom = Chem.Atom(1)
            rd_atom.SetIsotope(HYDROGEN_ISOTOPES[label])
        elif not is_element:
            rd_atom = Chem.Atom(0)
            if label is not None:
                rd_atom.SetProp(LABEL_PROP, label)
                rd_atom.SetProp("dummyLabel", label)
            rd_atom.SetNoImplicit(True)
        else:
            rd_atom = Chem.Atom(atom.element_number)
            if atom.isotope:
                rd_atom.SetIsotope(atom.isotope)

        charge = max(CHARGE_MIN, min(CHARGE_MAX, atom.charge))
        if charge:
            rd_atom.SetFormalCharge(charge)
        electrons = RADICAL_ELECTRONS.get(atom.radical)
        if electrons:
            rd_atom.SetNumRadicalElectrons(electrons)
        return rd_atom

    @staticmethod
    def _set_conformer(rw: Chem.RWMol, atoms: List[Atom]) -> None:
        if not atoms or not any(a.position_2d or a.position_3d for a in atoms):
            return
        is_3d = all(a.position_3d is not None for a in atoms)
        conf = Chem.Conformer(len(atoms))
        for i, atom in enumerate(atoms):
            if is_3d:
                p = atom.position_3d
                conf.SetAtomPosition(i, Point3D(p.x, -p.y, p.z))
            elif atom.position_2d is not None:
                p = atom.position_2d
                # 绘图坐标系 y 轴向下
                conf.SetAtomPosition(i, Point3D(p.x, -p.y, 0.0))
        conf.Set3D(is_3d)
        rw.AddConformer(conf, assignId=True)

    def _abbreviation_map(self, rec: ReconciledFragment) -> Dict[str, str]:
        result: Dict[str, str] = {}
        for label in rec.abbreviations:
            smiles = self.lookups.abbreviation_smiles(label)
            if smiles is None:
                logger.info("No SMILES known for abbreviation %r", label)
                continue
            result.setdefault(smiles, label)
        for label, nested in rec.nicknames.items():
            smiles = self.lookups.abbreviation_smiles(label) or self._nested_smiles(nested)
            if smiles:
                result.setdefault(smiles, label)
        return result

    def _nested_smiles(self, nested: Fragment) -> Optional[str]:
        converter = FragmentMolConverter(self.lookups, resubstitute=False)
        try:
            mol = converter.build(nested, keep_connection_points=True).mol
        except ValueError as exc:
            logger.info("Cannot convert nested fragment %s: %s", nested.id, exc)
            return None
        return Chem.MolToSmiles(mol)

    def _resubstitute(self, rw: Chem.RWMol) -> Chem.RWMol:
        for idx in sorted(labelled_dummies(rw), reverse=True):
            label = rw.GetAtomWithIdx(idx).GetProp(LABEL_PROP)
            if RGROUP_LABEL_PATTERN.search(label):
                continue
            smiles = self.lookups.abbreviation_smiles(label)
            if smiles is None:
                continue
            substituent = substituent_mol(smiles)
            if substituent is None:
                continue
            logger.debug("Resubstituting %r with %s", label, smiles)
            rw = replace_pseudo_atom(rw, idx, substituent)
        return rw
