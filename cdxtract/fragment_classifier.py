"""
Split the fragments of a page into complete and partial ones.

A fragment is complete when none of its atoms is an external connection point;
those can be converted on their own. Fragments that still carry connection points
are abbreviation bodies and are only kept in ``all_fragments`` for nested lookups.
"""

from __future__ import annotations

from typing import List

from .cdx_model import Fragment, Page, ReactionStep
from .cdx_visitor import CDVisitor, walk


class FragmentClassifier(CDVisitor):
    def __init__(self, page: Page):
        self.fragments: List[Fragment] = []
        self.all_fragments: List[Fragment] = []
        walk(page, self)

    def visit_fragment(self, fragment: Fragment) -> None:
        if not fragment.has_external_connection_point():
            self.fragments.append(fragment)
        self.all_fragments.append(fragment)


class ReactionStepCollector(CDVisitor):
    """Collect the reaction steps of a page in document order."""

    def __init__(self, page: Page):
        self.reaction_steps: List[ReactionStep] = []
        walk(page, self)

    def visit_reaction_step(self, step: ReactionStep) -> None:
        self.reaction_steps.append(step)


def classify_fragments(page: Page):
    """Return ``(complete, all)`` fragment lists of a page."""
    classifier = FragmentClassifier(page)
    return classifier.fragments, classifier.all_fragments
