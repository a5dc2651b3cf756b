"""
Exception types raised while reconstructing structures from a drawing document.

- StructuralError: a fragment cannot be turned into a molecular graph (malformed
  abbreviation, dangling bond). Fatal for that fragment only.
- IdentityServiceError: SMILES / InChI / RInChI generation failed.
- LookupTableError: a required lookup table is missing. Raised at start-up.
"""


class CdxtractError(Exception):
    """Base class for all cdxtract errors."""


class StructuralError(CdxtractError, ValueError):
    """Malformed drawing structure that cannot be reconciled."""


class IdentityServiceError(CdxtractError):
    """The structure-identity service could not produce an identifier."""


class LookupTableError(CdxtractError, RuntimeError):
    """A required lookup table could not be loaded."""
