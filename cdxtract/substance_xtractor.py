"""
Extract substances (one per drawn structure, or per R-group variant) from a document.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from rdkit import Chem

from .brackets import BracketCollector, expand_multiple_groups
from .cdx_model import Bracket, Document, Fragment, Page
from .cdx_utils import StructureLabel, StructureLabelCollector, nearest_structure_label
from .definitions import XtractSettings
from .errors import IdentityServiceError
from .fragment_classifier import classify_fragments
from .fragment_to_rdkit import FragmentMolConverter, MolConversion
from .identity_service import RDKitIdentityService
from .lookups import LookupTables, load_lookup_tables
from .markush import MarkushExpander, residue_labels
from .rgroup_text import RGroupTextCollector, parse_rgroup_text
from .sugar_projection import SugarProjectionDetector, contains_sugar_rings
from .xtract_models import ConversionOutcome, Substance, SubstanceInfo, SubstanceOccurrence

logger = logging.getLogger(__name__)


class SubstanceXtractor:
    """Turn the complete fragments of every page into substances.

    Args:
        lookups: label tables; loaded from ``settings.lookup_dir`` when omitted.
        identity_service: SMILES / InChI provider; RDKit by default.
        settings: run-time options.
    """

    def __init__(
        self,
        lookups: Optional[LookupTables] = None,
        identity_service=None,
        settings: Optional[XtractSettings] = None,
    ):
        self.settings = settings or XtractSettings()
        self.lookups = lookups if lookups is not None else load_lookup_tables(self.settings.lookup_dir)
        self.identity_service = identity_service or RDKitIdentityService(
            inchi_options=self.settings.inchi_options,
            aux_info_max_length=self.settings.aux_info_max_length,
        )
        self.converter = FragmentMolConverter(self.lookups)
        self.projections = SugarProjectionDetector(self.identity_service.isolated_rings)

    def convert_fragment(self, fragment: Fragment, brackets: List[Bracket] = ()) -> ConversionOutcome[MolConversion]:
        """展开重复括号并构建单个片段的分子"""
        if not fragment.is_valid():
            return ConversionOutcome.skipped("fewer than two usable atoms", fragment.id)
        # StructuralError 也是 ValueError; RDKit 的失败多为 RuntimeError
        try:
            work = expand_multiple_groups(fragment, list(brackets))
            return ConversionOutcome.success(self.converter.build(work))
        except (ValueError, RuntimeError) as exc:
            return ConversionOutcome.skipped(str(exc), fragment.id)

    def make_substance(self, mol: Chem.Mol, fragment: Fragment, abbreviations: Dict[str, str]) -> Substance:
        """Identify ``mol`` drawn as ``fragment``.

        Raises:
            IdentityServiceError: no SMILES could be written for ``mol``.
        """
        identity = self.identity_service.identify(mol)
        substance = Substance(
            smiles=identity.smiles,
            extended_smiles=identity.extended_smiles,
            inchi=identity.inchi,
            inchikey=identity.inchikey,
            aux_info=identity.aux_info,
            molecular_formula=identity.molecular_formula,
            mol=mol,
            abbreviations=dict(abbreviations),
        )
        substance.add_occurrence(SubstanceOccurrence.from_bounds(fragment.bounds))

        try:
            substance.descriptors = self.identity_service.descriptors(mol)
            rings = self.identity_service.isolated_rings(mol)
            substance.has_sugar_rings = contains_sugar_rings(mol, rings)
            substance.has_haworth_projection = self.projections.has_haworth_projection(mol)
            substance.has_chair_projection = self.projections.has_chair_projection(mol)
        except (ValueError, RuntimeError) as exc:
            logger.warning("Descriptors failed for %s: %s", substance.smiles, exc)
        return substance

    @staticmethod
    def _rgroups(page_rgroups: Dict[str, List[str]], fragment: Fragment) -> Dict[str, List[str]]:
        rgroups = dict(page_rgroups)
        for definition in fragment.rgroup_definitions():
            for identifier, labels in parse_rgroup_text(definition).items():
                rgroups.setdefault(identifier, labels)
        return rgroups

    def xtract_fragment(
        self,
        fragment: Fragment,
        brackets: List[Bracket],
        rgroups: Dict[str, List[str]],
        labels: List[StructureLabel],
        resolve_rgroups: bool = False,
    ) -> ConversionOutcome[List[Substance]]:
        outcome = self.convert_fragment(fragment, brackets)
        if not outcome.ok:
            return ConversionOutcome.skipped(outcome.reason, fragment.id)
        conversion = outcome.value

        mols = [conversion.mol]
        if resolve_rgroups and fragment.has_rgroup() and residue_labels(conversion.mol):
            expander = MarkushExpander(self._rgroups(rgroups, fragment), self.lookups)
            mols = expander.expand(conversion.mol)

        structure_label = nearest_structure_label(fragment.bounds, labels)
        substances = []
        for mol in mols:
            try:
                substance = self.make_substance(mol, fragment, conversion.abbreviations)
            except IdentityServiceError as exc:
                logger.error("Fragment %s: %s", fragment.id, exc)
                continue
            substance.structure_label = structure_label
            substances.append(substance)
        if not substances:
            return ConversionOutcome.skipped("no identifiable structure", fragment.id)
        return ConversionOutcome.success(substances)

    def xtract_page(self, page: Page, info: SubstanceInfo, resolve_rgroups: bool = False) -> List[Substance]:
        fragments, _ = classify_fragments(page)
        brackets = BracketCollector(page).multiple_groups
        rgroups = RGroupTextCollector(page).rgroups
        labels = StructureLabelCollector(page).labels
        info.no_fragments += len(fragments)

        substances = []
        for fragment in fragments:
            try:
                outcome = self.xtract_fragment(fragment, brackets, rgroups, labels, resolve_rgroups)
            except (ValueError, RuntimeError) as exc:
                outcome = ConversionOutcome.skipped(str(exc), fragment.id)
            if outcome.ok:
                substances.extend(outcome.value)
            elif not fragment.is_valid():
                logger.info("Skipping fragment %s: %s", fragment.id, outcome.reason)
            else:
                logger.error("Skipping fragment %s: %s", fragment.id, outcome.reason)
        return substances

    def xtract(
        self, document: Document, info: Optional[SubstanceInfo] = None, resolve_rgroups: bool = False
    ) -> List[Substance]:
        """All substances of ``document`` in drawing order, duplicates included."""
        info = info if info is not None else SubstanceInfo()
        substances = []
        for page in document.pages:
            substances.extend(self.xtract_page(page, info, resolve_rgroups))
        info.no_inchis = sum(1 for s in substances if s.inchi)
        info.no_substances = len(substances)
        return substances

    def xtract_unique(
        self, document: Document, info: Optional[SubstanceInfo] = None, resolve_rgroups: bool = False
    ) -> List[Substance]:
        """Substances deduplicated by InChI; the first one seen keeps its fields.

        Substances without InChI are never merged.
        """
        info = info if info is not None else SubstanceInfo()
        unique: Dict[str, Substance] = {}
        result = []
        for substance in self.xtract(document, info, resolve_rgroups):
            if substance.inchi:
                first = unique.get(substance.inchi)
                if first is not None:
                    first.merge(substance)
                    continue
                unique[substance.inchi] = substance
            result.append(substance)
        info.no_substances = len(result)
        return result
