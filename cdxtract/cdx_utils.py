"""
Small document helpers shared by the extractors.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, List, Optional

from .cdx_model import Fragment, Group, NodeType, Page, Point2D, Rectangle, Text
from .cdx_visitor import CDVisitor, walk
from .definitions import LABEL_MAX_DISTANCE_CUT_OFF

_DIGIT = re.compile(r"\d")


@dataclass(frozen=True)
class StructureLabel:
    label: str
    text: Text


def structure_label_of(text: Text) -> Optional[str]:
    """The first bold chunk containing a digit, e.g. ``1a`` in "compound **1a**"."""
    for chunk in text.chunks:
        if chunk.bold and _DIGIT.search(chunk.text):
            return chunk.text.strip()
    return None


class StructureLabelCollector(CDVisitor):
    def __init__(self, page: Page):
        self.labels: List[StructureLabel] = []
        walk(page, self)

    def visit_text(self, text: Text) -> None:
        if text.bounds is None:
            return
        label = structure_label_of(text)
        if label:
            self.labels.append(StructureLabel(label, text))


def _distance(a: Point2D, b: Point2D) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def nearest_structure_label(bounds: Optional[Rectangle], labels: List[StructureLabel]) -> Optional[str]:
    """Closest label whose centre is within ``5.0 + longest side`` of the structure centre."""
    if bounds is None or not labels:
        return None
    centre = bounds.center
    cut_off = LABEL_MAX_DISTANCE_CUT_OFF + bounds.longest_side

    best, best_distance = None, None
    for label in labels:
        distance = _distance(centre, label.text.bounds.center)
        if distance > cut_off:
            continue
        if best_distance is None or distance < best_distance:
            best, best_distance = label.label, distance
    return best


def atom_points(fragment: Fragment) -> List[Point2D]:
    return [a.position_2d for a in fragment.atoms if a.position_2d is not None]


def object_bounds(obj: Any) -> Optional[Rectangle]:
    return getattr(obj, "bounds", None)


def object_points(obj: Any) -> List[Point2D]:
    """Atom positions of a fragment or group, else the centre of its bounds."""
    if isinstance(obj, Fragment):
        points = atom_points(obj)
    elif isinstance(obj, Group):
        points = [p for f in obj.iter_fragments() for p in atom_points(f)]
    else:
        points = []
    if not points:
        bounds = object_bounds(obj)
        if bounds is not None:
            points = [bounds.center]
    return points


def text_agent_label(fragment: Fragment) -> Optional[str]:
    """Label of a fragment that is only a caption: one Unspecified atom carrying text."""
    if len(fragment.atoms) != 1:
        return None
    atom = fragment.atoms[0]
    if atom.node_type is not NodeType.UNSPECIFIED:
        return None
    return atom.display_text
