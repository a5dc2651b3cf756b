"""
Reaction roles from drawing geometry.

An object counts as "on" the arrow when the infinite line through the arrow meets
its bounding box. The line is not clipped to the drawn arrow, so a structure the
arrow merely points at still qualifies.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .cdx_model import Arrow, ArrowHead, Point2D, Rectangle
from .definitions import AGENTS_SPLIT_PATTERN, NUMBER_PATTERN
from .lookups import LookupTables
from .xtract_models import ReactionDirection

logger = logging.getLogger(__name__)


def intersects_rectangle(x1: float, y1: float, x2: float, y2: float, rect: Rectangle) -> bool:
    """Does the line through (x1, y1) and (x2, y2) meet ``rect``?

    The four corners are put into the line equation; the line crosses the box iff
    the signs are not all the same.
    """
    a = y2 - y1
    b = x1 - x2
    c = x2 * y1 - x1 * y2

    values = [
        a * x + b * y + c
        for x in (rect.min_x, rect.max_x)
        for y in (rect.min_y, rect.max_y)
    ]
    return min(values) <= 0 <= max(values)


def is_in_line_with_arrow(arrow: Arrow, bounds: Optional[Rectangle]) -> bool:
    if bounds is None:
        return False
    return intersects_rectangle(*arrow.line, bounds)


def _axis_position(arrow: Arrow, point: Point2D) -> Tuple[float, float]:
    """Fraction along the arrow (0 at tail, 1 at head) and distance from its axis."""
    dx, dy = arrow.head.x - arrow.tail.x, arrow.head.y - arrow.tail.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return 0.0, math.hypot(point.x - arrow.tail.x, point.y - arrow.tail.y)
    px, py = point.x - arrow.tail.x, point.y - arrow.tail.y
    along = (px * dx + py * dy) / length_sq
    across = abs(px * dy - py * dx) / math.sqrt(length_sq)
    return along, across


def arrow_length(arrow: Arrow) -> float:
    return math.hypot(arrow.head.x - arrow.tail.x, arrow.head.y - arrow.tail.y)


@dataclass
class RolePartition:
    reactants: List[Any] = field(default_factory=list)
    agents: List[Any] = field(default_factory=list)
    products: List[Any] = field(default_factory=list)


def classify_by_position(arrow: Arrow, candidates: Iterable[Tuple[Any, Optional[Rectangle]]]) -> RolePartition:
    """Assign each ``(object, bounds)`` a role from where it sits relative to ``arrow``.

    Before the tail and on the arrow line: reactant. Past the head and on the line:
    product. Beside the shaft, no further away than the arrow is long: agent.
    Everything else is left out.
    """
    partition = RolePartition()
    reach = arrow_length(arrow)
    for obj, bounds in candidates:
        if bounds is None:
            continue
        along, across = _axis_position(arrow, bounds.center)
        if along < 0:
            if is_in_line_with_arrow(arrow, bounds):
                partition.reactants.append(obj)
        elif along > 1:
            if is_in_line_with_arrow(arrow, bounds):
                partition.products.append(obj)
        elif across <= reach:
            partition.agents.append(obj)
    return partition


def split_agent_text(text: Optional[str], lookups: LookupTables) -> List[str]:
    """Agent names in a caption such as ``"Pd/C, H2 (1 atm), MeOH"``."""
    if not text:
        return []
    tokens = []
    for token in AGENTS_SPLIT_PATTERN.split(text):
        if len(token) <= 1:
            continue
        if NUMBER_PATTERN.fullmatch(token):
            continue
        if lookups.is_unwanted_word(token):
            continue
        tokens.append(token)
    return tokens


def _nearest(point: Point2D, points: Sequence[Point2D]) -> float:
    return min(math.hypot(p.x - point.x, p.y - point.y) for p in points)


def reaction_direction(
    arrow: Optional[Arrow],
    reactant_points: Sequence[Point2D],
    product_points: Sequence[Point2D],
) -> ReactionDirection:
    """Bidirectional for half heads on both ends, backward when the head points at the reactants."""
    if arrow is None:
        return ReactionDirection.FORWARD

    pair = (arrow.head_type, arrow.tail_type)
    if pair in ((ArrowHead.HALF_LEFT, ArrowHead.HALF_LEFT), (ArrowHead.HALF_RIGHT, ArrowHead.HALF_RIGHT)):
        return ReactionDirection.BIDIRECTIONAL

    if not reactant_points or not product_points:
        return ReactionDirection.FORWARD
    if _nearest(arrow.head, reactant_points) < _nearest(arrow.head, product_points):
        return ReactionDirection.BACKWARD
    return ReactionDirection.FORWARD
