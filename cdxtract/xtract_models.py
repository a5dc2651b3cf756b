"""
Result types returned by the substance and reaction extractors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from rdkit import Chem

from .cdx_model import Rectangle

T = TypeVar("T")


@dataclass(frozen=True)
class SubstanceOccurrence:
    """Where on the page a substance was drawn."""

    top: float
    left: float
    bottom: float
    right: float

    @classmethod
    def from_bounds(cls, bounds: Optional[Rectangle]) -> Optional["SubstanceOccurrence"]:
        if bounds is None:
            return None
        return cls(bounds.top, bounds.left, bounds.bottom, bounds.right)


@dataclass(frozen=True)
class MolecularDescriptors:
    atom_count: int
    aromatic_atom_count: int
    aromatic_bond_count: int
    hbond_donor_count: int
    hbond_acceptor_count: int
    largest_pi_system: int
    average_weight: float
    exact_mass: float
    xlogp: float


@dataclass
class Substance:
    smiles: Optional[str] = None
    extended_smiles: Optional[str] = None
    inchi: Optional[str] = None
    inchikey: Optional[str] = None
    aux_info: Optional[str] = None
    molecular_formula: Optional[str] = None
    mol: Optional[Chem.Mol] = field(default=None, repr=False)
    # insertion-ordered set
    occurrences: Dict[SubstanceOccurrence, None] = field(default_factory=dict)
    # SMILES -> label
    abbreviations: Dict[str, str] = field(default_factory=dict)
    structure_label: Optional[str] = None
    descriptors: Optional[MolecularDescriptors] = None
    has_sugar_rings: bool = False
    has_haworth_projection: bool = False
    has_chair_projection: bool = False

    def add_occurrence(self, occurrence: Optional[SubstanceOccurrence]) -> None:
        if occurrence is not None:
            self.occurrences.setdefault(occurrence, None)

    def merge(self, other: "Substance") -> None:
        """Fold a duplicate into this substance; fields already set here win."""
        for occurrence in other.occurrences:
            self.add_occurrence(occurrence)
        for smiles, label in other.abbreviations.items():
            self.abbreviations.setdefault(smiles, label)
        if self.structure_label is None:
            self.structure_label = other.structure_label


@dataclass
class SubstanceInfo:
    no_fragments: int = 0
    no_inchis: int = 0
    no_substances: int = 0


class ReactionDirection(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"
    BIDIRECTIONAL = "bidirectional"


@dataclass
class ReactionComponent:
    inchi: Optional[str] = None
    inchikey: Optional[str] = None
    smiles: Optional[str] = None
    label: Optional[str] = None
    bounds: Optional[Rectangle] = None
    mol: Optional[Chem.Mol] = field(default=None, repr=False)


@dataclass
class Reaction:
    reactants: List[ReactionComponent] = field(default_factory=list)
    products: List[ReactionComponent] = field(default_factory=list)
    agents: List[ReactionComponent] = field(default_factory=list)
    reaction_smiles: Optional[str] = None
    rinchi: Optional[str] = None
    long_rinchikey: Optional[str] = None
    short_rinchikey: Optional[str] = None
    web_rinchikey: Optional[str] = None
    aux_info: Optional[str] = None
    direction: ReactionDirection = ReactionDirection.FORWARD
    step_id: Optional[int] = None


@dataclass
class ReactionInfo:
    no_steps: int = 0
    no_reactions: int = 0
    no_skipped: int = 0
    unknown_agents: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ConversionOutcome(Generic[T]):
    """Result of converting one fragment or reaction step: a value, or the reason it was skipped."""

    value: Optional[T] = None
    reason: Optional[str] = None
    context: Any = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T) -> "ConversionOutcome[T]":
        return cls(value=value)

    @classmethod
    def skipped(cls, reason: str, context: Any = None) -> "ConversionOutcome[T]":
        return cls(reason=reason, context=context)
