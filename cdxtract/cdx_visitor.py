"""
Traversal of the drawing document.

``walk(node, visitor)`` descends depth-first, pre-order, in a fixed order:

    Document -> Page -> Groups -> Fragments -> Brackets -> Texts -> ReactionSteps
    Group    -> Groups -> Fragments -> Texts
    Fragment -> Atoms (-> nested Fragments -> label Text) -> Bonds -> Texts
    Bracket  -> nested Brackets

A nested fragment is only reached through the atom that owns it, so each node is
visited once. Visitors override the ``visit_*`` hooks they care about; the rest are
no-ops. Traversal never modifies the tree.
"""

from __future__ import annotations

from typing import Callable, Dict, Type

from .cdx_model import (
    Atom,
    Bond,
    Bracket,
    Document,
    Fragment,
    Group,
    Page,
    ReactionStep,
    Text,
)


class CDVisitor:
    """Per-node-kind callbacks. Subclasses override what they need."""

    def visit_document(self, document: Document) -> None:
        pass

    def visit_page(self, page: Page) -> None:
        pass

    def visit_group(self, group: Group) -> None:
        pass

    def visit_fragment(self, fragment: Fragment) -> None:
        pass

    def visit_atom(self, atom: Atom) -> None:
        pass

    def visit_bond(self, bond: Bond) -> None:
        pass

    def visit_bracket(self, bracket: Bracket) -> None:
        pass

    def visit_text(self, text: Text) -> None:
        pass

    def visit_reaction_step(self, step: ReactionStep) -> None:
        pass


def _walk_document(document: Document, visitor: CDVisitor) -> None:
    visitor.visit_document(document)
    for page in document.pages:
        _walk_page(page, visitor)


def _walk_page(page: Page, visitor: CDVisitor) -> None:
    visitor.visit_page(page)
    for group in page.groups:
        _walk_group(group, visitor)
    for fragment in page.fragments:
        _walk_fragment(fragment, visitor)
    for bracket in page.brackets:
        _walk_bracket(bracket, visitor)
    for text in page.texts:
        visitor.visit_text(text)
    for step in page.reaction_steps:
        visitor.visit_reaction_step(step)


def _walk_group(group: Group, visitor: CDVisitor) -> None:
    visitor.visit_group(group)
    for sub_group in group.groups:
        _walk_group(sub_group, visitor)
    for fragment in group.fragments:
        _walk_fragment(fragment, visitor)
    for text in group.texts:
        visitor.visit_text(text)


def _walk_fragment(fragment: Fragment, visitor: CDVisitor) -> None:
    visitor.visit_fragment(fragment)
    for atom in fragment.atoms:
        _walk_atom(atom, visitor)
    for bond in fragment.bonds:
        visitor.visit_bond(bond)
    for text in fragment.texts:
        visitor.visit_text(text)


def _walk_atom(atom: Atom, visitor: CDVisitor) -> None:
    visitor.visit_atom(atom)
    for nested in atom.fragments:
        _walk_fragment(nested, visitor)
    if atom.text is not None:
        visitor.visit_text(atom.text)


def _walk_bracket(bracket: Bracket, visitor: CDVisitor) -> None:
    visitor.visit_bracket(bracket)
    for nested in bracket.brackets:
        _walk_bracket(nested, visitor)


_DISPATCH: Dict[Type, Callable[[object, CDVisitor], None]] = {
    Document: _walk_document,
    Page: _walk_page,
    Group: _walk_group,
    Fragment: _walk_fragment,
    Atom: _walk_atom,
    Bracket: _walk_bracket,
    Bond: lambda node, visitor: visitor.visit_bond(node),
    Text: lambda node, visitor: visitor.visit_text(node),
    ReactionStep: lambda node, visitor: visitor.visit_reaction_step(node),
}


def walk(node: object, visitor: CDVisitor) -> CDVisitor:
    """Traverse ``node`` and everything below it; returns the visitor for chaining."""
    try:
        handler = _DISPATCH[type(node)]
    except KeyError:
        raise TypeError(f"Cannot traverse object of type {type(node).__name__}") from None
    handler(node, visitor)
    return visitor
