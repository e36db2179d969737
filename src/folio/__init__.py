"""Folio - declarative read-only compositions over workspace collections.

Compositions join, filter, group and aggregate the records of a workspace
and are served as access-controlled JSON endpoints.
"""

__version__ = "0.1.0"

from folio.infrastructure.api.app import app

__all__ = ["app", "__version__"]
