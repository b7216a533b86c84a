"""
Handle bound to one workspace namespace.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, Optional

from .errors import InfrastructureError
from .flavors import NamespaceFlavor
from .k8s_client import K8sAuthorizationError, K8sConflictError, KubernetesClient

WORKSPACE_ID_LABEL = "che.workspace_id"


class NamespaceAccess:
    """
    Access to a resolved namespace on behalf of one workspace.

    Instances are created per call and hold nothing but the namespace name,
    the workspace id and the collaborators needed to reach the cluster.
    """

    def __init__(self, name: str, workspace_id: Optional[str], flavor: NamespaceFlavor,
                 k8s_client: KubernetesClient, max_parallel_operations: int = 5):
        self.name = name
        self.workspace_id = workspace_id
        self.flavor = flavor
        self.client = k8s_client
        self.max_parallel_operations = max_parallel_operations
        self.logger = logging.getLogger(__name__)

    def __repr__(self) -> str:
        return f"NamespaceAccess(name={self.name!r}, workspace_id={self.workspace_id!r})"

    def prepare(self, can_create: bool, labels: Optional[Dict[str, str]] = None,
                annotations: Optional[Dict[str, str]] = None) -> bool:
        """
        Make sure the namespace exists.

        Args:
            can_create: Whether a missing namespace may be created
            labels: Labels set on a newly created namespace
            annotations: Annotations set on a newly created namespace

        Returns:
            bool: True if this call created the namespace

        Raises:
            InfrastructureError: If the namespace is missing and may not be created,
                or the cluster rejects the creation
        """
        try:
            existing = self.flavor.fetch(self.name)
        except K8sAuthorizationError:
            # Some clusters deny reads on namespaces that do not exist yet
            existing = None

        if existing is not None:
            return False

        if not can_create:
            raise InfrastructureError(
                f"Namespace '{self.name}' does not exist and creation is not allowed"
            )

        try:
            self.flavor.create(self.name, labels or {}, annotations or {})
        except K8sConflictError:
            self.logger.debug(f"{self.flavor.kind} {self.name} was created concurrently")
            return False

        self.logger.info(f"Created {self.flavor.kind} {self.name} for workspace {self.workspace_id}")
        return True

    def get_secret(self, secret_name: str) -> Optional[Dict[str, Any]]:
        return self.client.get_secret(self.name, secret_name)

    def get_config_map(self, config_map_name: str) -> Optional[Dict[str, Any]]:
        return self.client.get_config_map(self.name, config_map_name)

    def cleanup(self) -> None:
        """
        Delete the workspace objects labeled with the workspace id.

        Every kind is attempted even when another one fails; failures are
        reported together.

        Raises:
            InfrastructureError: Listing every kind that could not be deleted
        """
        label_selector = f"{WORKSPACE_ID_LABEL}={self.workspace_id}"
        actions = self.flavor.cleanup_actions()
        failures: Dict[str, Exception] = {}

        with ThreadPoolExecutor(max_workers=min(self.max_parallel_operations, len(actions))) as executor:
            future_to_kind = {
                executor.submit(action, self.name, label_selector): kind
                for kind, action in actions.items()
            }

            for future in as_completed(future_to_kind):
                kind = future_to_kind[future]
                try:
                    future.result()
                except Exception as e:
                    self.logger.error(f"Failed to delete {kind} of workspace {self.workspace_id}: {e}")
                    failures[kind] = e

        if failures:
            details = "; ".join(f"{kind}: {failures[kind]}" for kind in actions if kind in failures)
            raise InfrastructureError(
                f"Error(s) occurred while cleaning up namespace {self.name}: {details}",
                cause=next(iter(failures.values()))
            )

        self.logger.info(f"Cleaned up workspace {self.workspace_id} objects in {self.name}")

    def delete(self) -> None:
        """
        Delete the namespace itself.

        Raises:
            InfrastructureError: If the cluster rejects the deletion
        """
        if self.flavor.delete(self.name):
            self.logger.info(f"Deleted {self.flavor.kind} {self.name}")
        else:
            self.logger.debug(f"{self.flavor.kind} {self.name} was already deleted")
