"""
Shared patterns, thresholds and run-time settings.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from typing import Optional

# R1, X, Ar2 ... as a standalone atom label
RGROUP_LABEL_STRING = r"^(?:R|X|Y|Ar|E|L)\d*\b"
RGROUP_LABEL_PATTERN = re.compile(RGROUP_LABEL_STRING)

# "R = ..." definitions in free text
RGROUP_STRING = r"\b(R|X|Y|Ar|E|L)\b\s*=\s*(.+)"
RGROUP_PATTERN = re.compile(RGROUP_STRING)

# "(a) H, (b) F" enumerations on the right-hand side of an R-group definition
RGROUP_ENUMERATED_PATTERN = re.compile(r"\([a-zA-Z]\)\s*([^,]+)")

# whitespace, brackets, colon, semicolon, comma, percent and slash separate agent names
AGENTS_SPLIT_PATTERN = re.compile(r"[\s\[\](){}:;,%/]+")
NUMBER_PATTERN = re.compile(r"-?\d+(\.\d+)?")

# 无法解析为结构的原子标签上附带的警告文本
UNINTERPRETABLE_LABEL_WARNING = "ChemDraw can't interpret this label."

AUX_INFO_MAX_LENGTH = 4000
DEFAULT_INCHI_OPTIONS = "-Polymers -NPZz"

# bonds within 5 degrees of horizontal count as the flat front edge of a Haworth ring
CARDINALITY_THRESHOLD = math.radians(5)
PROJECTION_RING_MIN = 5
PROJECTION_RING_MAX = 7
SUGAR_RING_MIN = 5
SUGAR_RING_MAX = 6

LABEL_MAX_DISTANCE_CUT_OFF = 5.0

LOOKUP_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "lookup_data")
ABBREVIATION_FILE = "abbreviations.smi"
AGENT_ABBREVIATION_FILE = "agents_abbreviations.smi"
UNWANTED_ABBREVIATION_FILE = "unwanted_abbreviations.txt"
UNWANTED_WORD_FILE = "unwanted_words.txt"


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class XtractSettings:
    """Run-time options shared by the substance and reaction extractors."""

    lookup_dir: str = LOOKUP_DIR
    aux_info_max_length: int = AUX_INFO_MAX_LENGTH
    inchi_options: str = DEFAULT_INCHI_OPTIONS
    sanitize_reactions: bool = False

    @classmethod
    def from_env(cls) -> "XtractSettings":
        """Build settings from ``CDXTRACT_*`` environment variables."""
        return cls(
            lookup_dir=os.environ.get("CDXTRACT_LOOKUP_DIR", LOOKUP_DIR),
            aux_info_max_length=int(os.environ.get("CDXTRACT_AUXINFO_MAX", AUX_INFO_MAX_LENGTH)),
            inchi_options=os.environ.get("CDXTRACT_INCHI_OPTIONS", DEFAULT_INCHI_OPTIONS),
            sanitize_reactions=_env_flag(os.environ.get("CDXTRACT_SANITIZE_REACTIONS"), False),
        )
