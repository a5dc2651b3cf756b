"""
In-memory model of a chemical drawing document.

Document
  └── Page
        ├── Group ── Group / Fragment / Text (captions)
        ├── Fragment ── Atom ── Fragment (nested abbreviation, owned by the atom)
        │            └─ Bond
        ├── Bracket ── Bracket
        ├── Text
        └── ReactionStep

Coordinates are page-relative and y points down, as in the drawing program.
Nodes compare by identity: two atoms with identical fields are still two atoms.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, List, Optional, Tuple

from .definitions import RGROUP_LABEL_PATTERN, RGROUP_PATTERN, UNINTERPRETABLE_LABEL_WARNING


class NodeType(Enum):
    UNSPECIFIED = "Unspecified"
    ELEMENT = "Element"
    ELEMENT_LIST = "ElementList"
    ELEMENT_LIST_NICKNAME = "ElementListNickname"
    NICKNAME = "Nickname"
    FRAGMENT = "Fragment"
    FORMULA = "Formula"
    GENERIC_NICKNAME = "GenericNickname"
    ANONYMOUS_ALTERNATIVE_GROUP = "AnonymousAlternativeGroup"
    NAMED_ALTERNATIVE_GROUP = "NamedAlternativeGroup"
    MULTI_ATTACHMENT = "MultiAttachment"
    VARIABLE_ATTACHMENT = "VariableAttachment"
    EXTERNAL_CONNECTION_POINT = "ExternalConnectionPoint"
    LINK_NODE = "LinkNode"


class BondOrder(Enum):
    SINGLE = "Single"
    DOUBLE = "Double"
    TRIPLE = "Triple"
    QUADRUPLE = "Quadruple"
    ONE_HALF = "OneHalf"  # aromatic
    DATIVE = "Dative"
    IONIC = "Ionic"
    HYDROGEN = "Hydrogen"
    THREE_CENTER = "ThreeCenter"
    SINGLE_OR_DOUBLE = "SingleOrDouble"
    SINGLE_OR_AROMATIC = "SingleOrAromatic"
    DOUBLE_OR_AROMATIC = "DoubleOrAromatic"
    ANY = "Any"


class BondDisplay(Enum):
    SOLID = "Solid"
    DASH = "Dash"
    HASH = "Hash"
    WEDGED_HASH_BEGIN = "WedgedHashBegin"
    WEDGED_HASH_END = "WedgedHashEnd"
    BOLD = "Bold"
    WEDGE_BEGIN = "WedgeBegin"
    WEDGE_END = "WedgeEnd"
    WAVY = "Wavy"
    HOLLOW_WEDGE_BEGIN = "HollowWedgeBegin"
    HOLLOW_WEDGE_END = "HollowWedgeEnd"


class BondStereo(Enum):
    NONE = "None"
    E = "E"
    Z = "Z"
    UNDETERMINED = "Undetermined"


class AtomCIP(Enum):
    NONE = "None"
    R = "R"
    S = "S"
    UNDETERMINED = "Undetermined"


class Radical(Enum):
    NONE = "None"
    SINGLET = "Singlet"
    DOUBLET = "Doublet"
    TRIPLET = "Triplet"


class BracketUsage(Enum):
    UNSPECIFIED = "Unspecified"
    MULTIPLE_GROUP = "MultipleGroup"
    SRU = "SRU"
    MONOMER = "Monomer"
    COPOLYMER = "Copolymer"
    COMPONENT = "Component"
    GENERIC = "Generic"


class ArrowHead(Enum):
    NONE = "None"
    FULL = "Full"
    HALF_LEFT = "HalfLeft"
    HALF_RIGHT = "HalfRight"


@dataclass(frozen=True)
class Point2D:
    x: float
    y: float


@dataclass(frozen=True)
class Point3D:
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned box; corners may come in either order."""

    top: float
    left: float
    bottom: float
    right: float

    @property
    def min_x(self) -> float:
        return min(self.left, self.right)

    @property
    def max_x(self) -> float:
        return max(self.left, self.right)

    @property
    def min_y(self) -> float:
        return min(self.top, self.bottom)

    @property
    def max_y(self) -> float:
        return max(self.top, self.bottom)

    @property
    def width(self) -> float:
        return abs(self.right - self.left)

    @property
    def height(self) -> float:
        return abs(self.top - self.bottom)

    @property
    def center(self) -> Point2D:
        return Point2D((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    @property
    def longest_side(self) -> float:
        return max(self.width, self.height)


@dataclass(frozen=True)
class StyledChunk:
    text: str
    bold: bool = False


@dataclass(eq=False)
class Text:
    text: str = ""
    bounds: Optional[Rectangle] = None
    chunks: List[StyledChunk] = field(default_factory=list)
    id: Optional[int] = None


@dataclass(eq=False)
class Atom:
    element_number: int = 6
    node_type: NodeType = NodeType.ELEMENT
    position_2d: Optional[Point2D] = None
    position_3d: Optional[Point3D] = None
    text: Optional[Text] = None
    label_text: Optional[str] = None
    chemical_warning: Optional[str] = None
    fragments: List["Fragment"] = field(default_factory=list)
    charge: int = 0
    isotope: int = 0
    radical: Radical = Radical.NONE
    stereochemistry: AtomCIP = AtomCIP.NONE
    bounds: Optional[Rectangle] = None
    id: Optional[int] = None

    @property
    def display_text(self) -> Optional[str]:
        """Label shown next to the atom: the text node content, else the label text."""
        if self.text is not None and self.text.text is not None:
            return self.text.text
        return self.label_text

    @property
    def is_abbreviation(self) -> bool:
        return self.chemical_warning == UNINTERPRETABLE_LABEL_WARNING

    def copy(self) -> "Atom":
        return dataclasses.replace(self, fragments=list(self.fragments))

    def __repr__(self) -> str:
        return f"Atom(id={self.id}, element={self.element_number}, type={self.node_type.value}, text={self.display_text!r})"


@dataclass(eq=False)
class Bond:
    begin: Atom
    end: Atom
    order: BondOrder = BondOrder.SINGLE
    display: BondDisplay = BondDisplay.SOLID
    stereo: BondStereo = BondStereo.NONE
    id: Optional[int] = None

    def other(self, atom: Atom) -> Atom:
        return self.end if atom is self.begin else self.begin

    def touches(self, atom: Atom) -> bool:
        return self.begin is atom or self.end is atom

    def copy(self) -> "Bond":
        return dataclasses.replace(self)

    def __repr__(self) -> str:
        return f"Bond(id={self.id}, {self.begin.id}-{self.end.id}, {self.order.value})"


@dataclass(eq=False)
class Fragment:
    atoms: List[Atom] = field(default_factory=list)
    bonds: List[Bond] = field(default_factory=list)
    texts: List[Text] = field(default_factory=list)
    bounds: Optional[Rectangle] = None
    id: Optional[int] = None

    def is_valid(self) -> bool:
        """At least two atoms, or one chemically meaningful atom without warning."""
        if len(self.atoms) >= 2:
            return True
        meaningful = {
            NodeType.ELEMENT,
            NodeType.GENERIC_NICKNAME,
            NodeType.FRAGMENT,
            NodeType.NICKNAME,
            NodeType.ANONYMOUS_ALTERNATIVE_GROUP,
        }
        return any(a.node_type in meaningful and a.chemical_warning is None for a in self.atoms)

    def has_external_connection_point(self) -> bool:
        return any(a.node_type is NodeType.EXTERNAL_CONNECTION_POINT for a in self.atoms)

    def has_rgroup(self) -> bool:
        return any(
            RGROUP_LABEL_PATTERN.search(a.display_text)
            for a in self.atoms
            if a.display_text is not None
        )

    def rgroup_definitions(self) -> List[str]:
        """Atom labels that carry an inline ``R = ...`` definition."""
        return [
            a.display_text
            for a in self.atoms
            if a.display_text is not None and RGROUP_PATTERN.search(a.display_text)
        ]

    def bonds_of(self, atom: Atom) -> List[Bond]:
        return [b for b in self.bonds if b.touches(atom)]

    def working_copy(self) -> "Fragment":
        """Same atoms and bonds in fresh lists, so edits do not reach the document."""
        return dataclasses.replace(
            self, atoms=list(self.atoms), bonds=list(self.bonds), texts=list(self.texts)
        )

    def __repr__(self) -> str:
        return f"Fragment(id={self.id}, atoms={len(self.atoms)}, bonds={len(self.bonds)})"


@dataclass(eq=False)
class Group:
    fragments: List[Fragment] = field(default_factory=list)
    groups: List["Group"] = field(default_factory=list)
    texts: List[Text] = field(default_factory=list)
    bounds: Optional[Rectangle] = None
    id: Optional[int] = None

    def iter_fragments(self) -> Iterator[Fragment]:
        """All fragments of this group and its sub-groups (not nested abbreviations)."""
        stack: List[Any] = list(self.groups) + list(self.fragments)
        while stack:
            obj = stack.pop()
            if isinstance(obj, Group):
                stack.extend(obj.groups)
                stack.extend(obj.fragments)
            else:
                yield obj


@dataclass(eq=False)
class CrossingBond:
    bond: Bond


@dataclass(eq=False)
class BracketAttachment:
    crossing_bonds: List[CrossingBond] = field(default_factory=list)


@dataclass(eq=False)
class Bracket:
    usage: BracketUsage = BracketUsage.UNSPECIFIED
    bracketed_objects: List[Any] = field(default_factory=list)
    attachments: List[BracketAttachment] = field(default_factory=list)
    repeat_count: float = 1.0
    brackets: List["Bracket"] = field(default_factory=list)
    id: Optional[int] = None


@dataclass(eq=False)
class Arrow:
    tail: Point2D
    head: Point2D
    head_type: ArrowHead = ArrowHead.FULL
    tail_type: ArrowHead = ArrowHead.NONE
    bounds: Optional[Rectangle] = None
    id: Optional[int] = None

    @property
    def line(self) -> Tuple[float, float, float, float]:
        return self.tail.x, self.tail.y, self.head.x, self.head.y


@dataclass(eq=False)
class ReactionStep:
    """Reactants/products/above/below may hold Fragments, Groups, Texts or plain strings."""

    reactants: List[Any] = field(default_factory=list)
    products: List[Any] = field(default_factory=list)
    arrows: List[Arrow] = field(default_factory=list)
    objects_above_arrow: List[Any] = field(default_factory=list)
    objects_below_arrow: List[Any] = field(default_factory=list)
    plusses: List[Any] = field(default_factory=list)
    id: Optional[int] = None

    @property
    def arrow(self) -> Optional[Arrow]:
        return self.arrows[0] if self.arrows else None


@dataclass(eq=False)
class Page:
    fragments: List[Fragment] = field(default_factory=list)
    groups: List[Group] = field(default_factory=list)
    brackets: List[Bracket] = field(default_factory=list)
    texts: List[Text] = field(default_factory=list)
    reaction_steps: List[ReactionStep] = field(default_factory=list)
    bounds: Optional[Rectangle] = None
    id: Optional[int] = None


@dataclass(eq=False)
class Document:
    pages: List[Page] = field(default_factory=list)
    name: Optional[str] = None
