"""Composition entity.

A composition is a saved, declarative read query over one or more
collections of a workspace, exposed as an endpoint with an access tier.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class AccessLevel(str, Enum):
    """Who may invoke a composition on the public execution path.

    - PUBLIC: anyone.
    - INTERNAL: any authenticated caller.
    - PRIVATE: nobody; only the management API can run it (as a preview).
    """

    PUBLIC = "public"
    INTERNAL = "internal"
    PRIVATE = "private"


@dataclass
class Composition:
    """Composition entity.

    Attributes:
        id: Composition ID.
        workspace_id: Owning workspace ID.
        slug: Identifier unique within the workspace.
        name: Display name.
        config: Persisted composition config (JSON form).
        access_level: Access tier on the public execution path.
        is_active: Inactive compositions behave as not found.
    """

    id: str
    workspace_id: str
    slug: str
    name: str
    config: dict[str, Any] = field(default_factory=dict)
    access_level: AccessLevel = AccessLevel.PRIVATE
    is_active: bool = True
    description: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
