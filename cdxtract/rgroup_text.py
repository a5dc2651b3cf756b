"""
Parse R-group definitions out of free text such as

    R = (a) H, (b) F, (c) Cl
    X = CH3, Cl

into ``{"R": ["H", "F", "Cl"]}``. Only the first ``identifier = ...`` of a text is
read; text that does not match yields nothing.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from .cdx_model import Page, Text
from .cdx_visitor import CDVisitor, walk
from .definitions import RGROUP_ENUMERATED_PATTERN, RGROUP_PATTERN


def parse_rgroup_text(text: Optional[str]) -> Dict[str, List[str]]:
    if not text:
        return {}

    match = RGROUP_PATTERN.search(text)
    if not match:
        return {}

    identifier = match.group(1)
    rhs = match.group(2).strip()

    labels = [m.group(1).strip() for m in RGROUP_ENUMERATED_PATTERN.finditer(rhs)]
    if not labels:
        labels = [part.strip() for part in rhs.split(",") if part.strip()]

    return {identifier: labels}


class RGroupTextCollector(CDVisitor):
    """Collect R-group definitions from all texts of a page; first definition wins."""

    def __init__(self, page: Page):
        self.rgroups: Dict[str, List[str]] = {}
        walk(page, self)

    def visit_text(self, text: Text) -> None:
        if text is None or text.text is None:
            return
        for identifier, labels in parse_rgroup_text(text.text).items():
            self.rgroups.setdefault(identifier, labels)
