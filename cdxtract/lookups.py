"""
Label lookup tables: abbreviation and agent SMILES, and the two denylists.

Tables are read once per directory with :func:`load_lookup_tables` and shared
read-only afterwards. A missing or unreadable file raises ``LookupTableError``.
"""

from __future__ import annotations

import functools
import logging
import os
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional

from rdkit import Chem

from .definitions import (
    ABBREVIATION_FILE,
    AGENT_ABBREVIATION_FILE,
    LOOKUP_DIR,
    UNWANTED_ABBREVIATION_FILE,
    UNWANTED_WORD_FILE,
)
from .errors import LookupTableError
from .substituents import parse_smiles

logger = logging.getLogger(__name__)


class LookupTables:
    """Immutable label tables injected into the extractors."""

    def __init__(
        self,
        abbreviations: Optional[Mapping[str, str]] = None,
        agents: Optional[Mapping[str, str]] = None,
        unwanted_abbreviations=(),
        unwanted_words=(),
    ):
        self._abbreviations = MappingProxyType({k.lower(): v for k, v in (abbreviations or {}).items()})
        self._agents = MappingProxyType({k.lower(): v for k, v in (agents or {}).items()})
        self._unwanted_abbreviations: FrozenSet[str] = frozenset(unwanted_abbreviations)
        self._unwanted_words: FrozenSet[str] = frozenset(unwanted_words)

    @property
    def abbreviations(self) -> Mapping[str, str]:
        return self._abbreviations

    @property
    def agents(self) -> Mapping[str, str]:
        return self._agents

    def abbreviation_smiles(self, label: Optional[str]) -> Optional[str]:
        if not label:
            return None
        return self._abbreviations.get(label.strip().lower())

    def agent_smiles(self, label: Optional[str]) -> Optional[str]:
        if not label:
            return None
        return self._agents.get(label.strip().lower())

    def is_unwanted_abbreviation(self, label: Optional[str]) -> bool:
        return label is not None and label in self._unwanted_abbreviations

    def is_unwanted_word(self, word: Optional[str]) -> bool:
        return word is not None and word in self._unwanted_words

    def __repr__(self) -> str:
        return (
            f"LookupTables(abbreviations={len(self._abbreviations)}, agents={len(self._agents)}, "
            f"unwanted_abbreviations={len(self._unwanted_abbreviations)}, "
            f"unwanted_words={len(self._unwanted_words)})"
        )


def _iter_lines(path: str):
    try:
        with open(path, encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if line and not line.startswith("#"):
                    yield line
    except OSError as exc:
        raise LookupTableError(f"Cannot read lookup table {path}: {exc}") from exc


def read_smiles_table(path: str) -> Dict[str, str]:
    """Read ``<label> <SMILES>`` lines; the label may contain spaces, the SMILES may not."""
    table: Dict[str, str] = {}
    for line in _iter_lines(path):
        parts = line.rsplit(None, 1)
        if len(parts) != 2:
            logger.warning("Skipping malformed line in %s: %r", os.path.basename(path), line)
            continue
        label, smiles = parts[0].strip().lower(), parts[1]
        if label in table:
            continue
        mol = parse_smiles(smiles)
        if mol is None:
            logger.warning("Skipping %r in %s: invalid SMILES %r", label, os.path.basename(path), smiles)
            continue
        table[label] = Chem.MolToSmiles(mol)
    return table


def read_word_list(path: str) -> FrozenSet[str]:
    return frozenset(_iter_lines(path))


def load_lookup_tables(lookup_dir: str = LOOKUP_DIR) -> LookupTables:
    """Load (once per directory) the four lookup tables shipped with the package."""
    return _load(os.path.abspath(lookup_dir))


@functools.lru_cache(maxsize=None)
def _load(lookup_dir: str) -> LookupTables:
    # 按绝对路径缓存, 同一目录只读取一次
    if not os.path.isdir(lookup_dir):
        raise LookupTableError(f"Lookup directory not found: {lookup_dir}")

    tables = LookupTables(
        abbreviations=read_smiles_table(os.path.join(lookup_dir, ABBREVIATION_FILE)),
        agents=read_smiles_table(os.path.join(lookup_dir, AGENT_ABBREVIATION_FILE)),
        unwanted_abbreviations=read_word_list(os.path.join(lookup_dir, UNWANTED_ABBREVIATION_FILE)),
        unwanted_words=read_word_list(os.path.join(lookup_dir, UNWANTED_WORD_FILE)),
    )
    logger.debug("Loaded %r from %s", tables, lookup_dir)
    return tables
