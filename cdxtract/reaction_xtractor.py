"""
Extract reactions from the reaction steps of a document.

Reactants and products come from the step itself; when a step lists neither, they
are taken from the fragments around its arrow. Agents are whatever is drawn above
or below the arrow: structures, or captions naming reagents and solvents.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from rdkit import Chem

from .brackets import BracketCollector
from .cdx_model import Bracket, Document, Fragment, Group, Page, ReactionStep, Text
from .cdx_utils import object_bounds, object_points, text_agent_label
from .definitions import XtractSettings
from .errors import IdentityServiceError
from .fragment_classifier import ReactionStepCollector
from .lookups import LookupTables
from .reaction_geometry import classify_by_position, is_in_line_with_arrow, reaction_direction, split_agent_text
from .substance_xtractor import SubstanceXtractor
from .substituents import parse_smiles
from .xtract_models import ConversionOutcome, Reaction, ReactionComponent, ReactionInfo

logger = logging.getLogger(__name__)


class ReactionXtractor:
    """Build reactions from reaction steps.

    Args:
        lookups: label tables; loaded from ``settings.lookup_dir`` when omitted.
        identity_service: SMILES / InChI / RInChI provider; RDKit by default.
        settings: run-time options; ``sanitize_reactions`` drops reactants and
            products that are not in line with the arrow.
    """

    def __init__(
        self,
        lookups: Optional[LookupTables] = None,
        identity_service=None,
        settings: Optional[XtractSettings] = None,
    ):
        self.substances = SubstanceXtractor(lookups, identity_service, settings)
        self.settings = self.substances.settings
        self.lookups = self.substances.lookups
        self.identity_service = self.substances.identity_service
        self._unknowns: Dict[str, None] = {}

    @property
    def unknowns(self) -> List[str]:
        """Agent labels met so far that are not in the agent table."""
        return list(self._unknowns)

    def _component(self, mol: Chem.Mol, bounds=None, label: Optional[str] = None) -> ReactionComponent:
        component = ReactionComponent(mol=mol, bounds=bounds, label=label)
        if mol.GetNumAtoms() == 0:
            return component
        try:
            identity = self.identity_service.identify(mol)
        except IdentityServiceError as exc:
            logger.warning("No identifiers for reaction component: %s", exc)
            return component
        component.smiles = identity.smiles
        component.inchi = identity.inchi
        component.inchikey = identity.inchikey
        return component

    def _structure_component(self, obj: Any, brackets: List[Bracket]) -> Optional[ReactionComponent]:
        if isinstance(obj, Fragment):
            outcome = self.substances.convert_fragment(obj, brackets)
            if not outcome.ok:
                logger.warning("Dropping fragment %s from reaction: %s", obj.id, outcome.reason)
                return None
            return self._component(outcome.value.mol, obj.bounds)

        if isinstance(obj, Group):
            mols = []
            for fragment in obj.iter_fragments():
                outcome = self.substances.convert_fragment(fragment, brackets)
                if outcome.ok:
                    mols.append(outcome.value.mol)
            # 仅当恰好一个片段转换成功时, group 才代表一个结构
            mol = mols[0] if len(mols) == 1 else Chem.Mol()
            return self._component(mol, obj.bounds)

        return None

    def _named_agent(self, name: str, bounds=None) -> Optional[ReactionComponent]:
        smiles = self.lookups.agent_smiles(name)
        mol = parse_smiles(smiles) if smiles else None
        if mol is None:
            if name not in self._unknowns:
                logger.warning("Unknown reaction agent %r", name)
            self._unknowns.setdefault(name, None)
            return None
        return self._component(mol, bounds, label=name)

    def _text_agents(self, text: Optional[str], bounds=None) -> List[ReactionComponent]:
        components = [self._named_agent(token, bounds) for token in split_agent_text(text, self.lookups)]
        return [c for c in components if c is not None]

    def _agent_components(self, objects: List[Any], brackets: List[Bracket]) -> List[ReactionComponent]:
        components = []
        for obj in objects:
            if isinstance(obj, str):
                components.extend(self._text_agents(obj))
            elif isinstance(obj, Text):
                components.extend(self._text_agents(obj.text, obj.bounds))
            elif isinstance(obj, Fragment) and text_agent_label(obj) is not None:
                # 单原子标签片段: 整个标签作为一个试剂名
                agent = self._named_agent(text_agent_label(obj), obj.bounds)
                if agent is not None:
                    components.append(agent)
            elif isinstance(obj, (Fragment, Group)):
                component = self._structure_component(obj, brackets)
                if component is not None:
                    components.append(component)
            else:
                raise TypeError(f"Unexpected agent object {type(obj).__name__}")
        return components

    def _roles(self, step: ReactionStep, page: Page) -> Tuple[List[Any], List[Any], List[Any]]:
        reactants, products = list(step.reactants), list(step.products)
        agents = list(step.objects_above_arrow) + list(step.objects_below_arrow)
        arrow = step.arrow

        if not reactants and not products and arrow is not None:
            taken = {id(o) for o in agents}
            candidates = [
                (obj, object_bounds(obj))
                for obj in list(page.groups) + [f for f in page.fragments if not f.has_external_connection_point()]
                if id(obj) not in taken
            ]
            partition = classify_by_position(arrow, candidates)
            logger.debug(
                "Step %s roles from geometry: %d reactants, %d agents, %d products",
                step.id, len(partition.reactants), len(partition.agents), len(partition.products),
            )
            reactants, products = partition.reactants, partition.products
            agents.extend(partition.agents)

        if self.settings.sanitize_reactions and arrow is not None:
            reactants = [o for o in reactants if is_in_line_with_arrow(arrow, object_bounds(o))]
            products = [o for o in products if is_in_line_with_arrow(arrow, object_bounds(o))]
        return reactants, agents, products

    def xtract_step(self, step: ReactionStep, page: Page, brackets: List[Bracket]) -> ConversionOutcome[Reaction]:
        try:
            reactant_objs, agent_objs, product_objs = self._roles(step, page)
            reactants = [c for c in (self._structure_component(o, brackets) for o in reactant_objs) if c]
            products = [c for c in (self._structure_component(o, brackets) for o in product_objs) if c]
            agents = self._agent_components(agent_objs, brackets)
        except (TypeError, ValueError, RuntimeError) as exc:
            return ConversionOutcome.skipped(str(exc), step.id)

        if not reactants:
            return ConversionOutcome.skipped("no reactants", step.id)
        if not products:
            return ConversionOutcome.skipped("no products", step.id)

        reaction = Reaction(
            reactants=reactants,
            products=products,
            agents=agents,
            direction=reaction_direction(
                step.arrow,
                [p for o in reactant_objs for p in object_points(o)],
                [p for o in product_objs for p in object_points(o)],
            ),
            step_id=step.id,
        )

        try:
            identity = self.identity_service.identify_reaction(
                [c.mol for c in reactants], [c.mol for c in products], [c.mol for c in agents]
            )
        except IdentityServiceError as exc:
            logger.warning("Step %s: %s", step.id, exc)
            return ConversionOutcome.success(reaction)

        reaction.reaction_smiles = identity.reaction_smiles
        reaction.rinchi = identity.rinchi
        reaction.long_rinchikey = identity.long_rinchikey
        reaction.short_rinchikey = identity.short_rinchikey
        reaction.web_rinchikey = identity.web_rinchikey
        reaction.aux_info = identity.aux_info
        return ConversionOutcome.success(reaction)

    def xtract(self, document: Document, info: Optional[ReactionInfo] = None) -> List[Reaction]:
        info = info if info is not None else ReactionInfo()
        reactions = []
        for page in document.pages:
            brackets = BracketCollector(page).multiple_groups
            for step in ReactionStepCollector(page).reaction_steps:
                info.no_steps += 1
                try:
                    outcome = self.xtract_step(step, page, brackets)
                except (ValueError, RuntimeError) as exc:
                    outcome = ConversionOutcome.skipped(str(exc), step.id)
                if outcome.ok:
                    reactions.append(outcome.value)
                    info.no_reactions += 1
                else:
                    logger.error("Skipping reaction step %s: %s", step.id, outcome.reason)
                    info.no_skipped += 1
        info.unknown_agents = self.unknowns
        return reactions
