"""
Data model shared by the namespace provisioning components.
"""

import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger(__name__)

# Attributes exposed on NamespaceMeta
DEFAULT_ATTRIBUTE = "default"
PHASE_ATTRIBUTE = "phase"
DISPLAY_NAME_ATTRIBUTE = "displayName"
DESCRIPTION_ATTRIBUTE = "description"

# Keys used to remember the evaluated namespace in user preferences
NAMESPACE_PREFERENCE = "infrastructureNamespace"
NAMESPACE_TEMPLATE_PREFERENCE = "infrastructureNamespaceTemplate"

# Workspace attribute holding the namespace recorded on first start
WORKSPACE_NAMESPACE_ATTRIBUTE = "infrastructureNamespace"


@dataclass(frozen=True)
class ResolutionContext:
    """Per-request identity used to evaluate namespace templates."""
    user_id: str
    user_name: str
    workspace_id: Optional[str] = None


@dataclass(frozen=True)
class RuntimeIdentity:
    """
    Identity of a workspace runtime.

    ``infrastructure_namespace`` is the namespace literally recorded on the
    workspace, or None for workspaces that never obtained one. ``workspace_id``
    is None when a namespace is provisioned for a user outside of any workspace.
    """
    workspace_id: Optional[str]
    owner_id: str
    owner_name: str
    infrastructure_namespace: Optional[str] = None

    def resolution_context(self) -> ResolutionContext:
        return ResolutionContext(
            user_id=self.owner_id,
            user_name=self.owner_name,
            workspace_id=self.workspace_id
        )


@dataclass
class NamespaceMeta:
    """Namespace description returned to API and UI layers."""
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def is_default(self) -> bool:
        return self.attributes.get(DEFAULT_ATTRIBUTE) == "true"

    @property
    def phase(self) -> Optional[str]:
        return self.attributes.get(PHASE_ATTRIBUTE)

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'attributes': dict(self.attributes)}


class PreferenceStore(Protocol):
    """Persistence of per-user preferences, owned by another subsystem."""

    def find(self, user_id: str) -> Dict[str, str]:
        ...

    def update(self, user_id: str, preferences: Dict[str, str]) -> None:
        ...


class InMemoryPreferenceStore:
    """Thread-safe preference store kept in process memory."""

    def __init__(self, initial: Optional[Dict[str, Dict[str, str]]] = None):
        self._preferences: Dict[str, Dict[str, str]] = copy.deepcopy(initial or {})
        self._lock = threading.Lock()

    def find(self, user_id: str) -> Dict[str, str]:
        with self._lock:
            return dict(self._preferences.get(user_id, {}))

    def update(self, user_id: str, preferences: Dict[str, str]) -> None:
        with self._lock:
            self._preferences[user_id] = dict(preferences)
        logger.debug(f"Updated {len(preferences)} preferences for user {user_id}")
