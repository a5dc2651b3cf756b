"""
cdxtract: substances and reactions from chemical drawing documents.

    from cdxtract import SubstanceXtractor, SubstanceInfo

    info = SubstanceInfo()
    substances = SubstanceXtractor().xtract_unique(document, info)

Documents are built with the types in ``cdxtract.cdx_model``; molecules are RDKit.
"""

import logging

from .cdx_model import Document
from .definitions import XtractSettings
from .errors import CdxtractError, IdentityServiceError, LookupTableError, StructuralError
from .identity_service import RDKitIdentityService
from .lookups import LookupTables, load_lookup_tables
from .reaction_xtractor import ReactionXtractor
from .substance_xtractor import SubstanceXtractor
from .xtract_models import Reaction, ReactionInfo, Substance, SubstanceInfo

__version__ = "0.1.0"

__all__ = [
    "CdxtractError",
    "Document",
    "IdentityServiceError",
    "LookupTableError",
    "LookupTables",
    "RDKitIdentityService",
    "Reaction",
    "ReactionInfo",
    "ReactionXtractor",
    "StructuralError",
    "Substance",
    "SubstanceInfo",
    "SubstanceXtractor",
    "XtractSettings",
    "configure_logging",
    "load_lookup_tables",
]


def configure_logging(level=logging.INFO) -> None:
    """Send cdxtract log records to stderr. Library code never calls this."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
