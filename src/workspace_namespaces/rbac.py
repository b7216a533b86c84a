"""
RBAC bootstrap for workspace service accounts.

Reconciles the workspace ServiceAccount, the fixed set of Roles it needs, the
RoleBindings to those Roles and bindings to any configured extra ClusterRoles.
Objects are only ever added: an existing Role or RoleBinding with the same
name is left exactly as found.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .config import NamespaceConfig
from .errors import InfrastructureError
from .k8s_client import K8sAuthorizationError, K8sConflictError, KubernetesClient

WORKSPACE_CREDENTIALS_SECRET_NAME = "workspace-credentials-secret"
WORKSPACE_PREFERENCES_CONFIGMAP_NAME = "workspace-preferences-configmap"

METRICS_API_PATH = "/apis/metrics.k8s.io"


def _rule(api_groups: List[str], resources: List[str], verbs: List[str],
          resource_names: Optional[List[str]] = None) -> Dict[str, Any]:
    rule = {'apiGroups': api_groups, 'resources': resources, 'verbs': verbs}
    if resource_names:
        rule['resourceNames'] = resource_names
    return rule


@dataclass
class RoleSpec:
    """A Role owned by the bootstrapper and the suffix of its binding name."""
    name: str
    binding_suffix: str
    rules: List[Dict[str, Any]]


BASE_ROLES = [
    RoleSpec(
        name="workspace-view",
        binding_suffix="view",
        rules=[_rule([""], ["pods", "services"], ["get", "list", "watch"])]
    ),
    RoleSpec(
        name="exec",
        binding_suffix="exec",
        rules=[_rule([""], ["pods/exec"], ["create"])]
    ),
    RoleSpec(
        name="workspace-secrets",
        binding_suffix="secrets",
        rules=[_rule([""], ["secrets"], ["get", "patch"], [WORKSPACE_CREDENTIALS_SECRET_NAME])]
    ),
    RoleSpec(
        name="workspace-configmaps",
        binding_suffix="configmaps",
        rules=[_rule([""], ["configmaps"], ["get", "patch"], [WORKSPACE_PREFERENCES_CONFIGMAP_NAME])]
    ),
]

METRICS_ROLE = RoleSpec(
    name="workspace-metrics",
    binding_suffix="metrics",
    rules=[_rule(["metrics.k8s.io"], ["pods", "nodes"], ["get", "list", "watch"])]
)


@dataclass
class RbacSpec:
    """What the bootstrapper reconciles for one workspace service account."""
    service_account_name: str
    base_role_names: List[str] = field(default_factory=lambda: [role.name for role in BASE_ROLES])
    extra_cluster_role_names: Set[str] = field(default_factory=set)

    @classmethod
    def from_config(cls, config: NamespaceConfig) -> 'RbacSpec':
        return cls(
            service_account_name=config.service_account_name.strip(),
            extra_cluster_role_names=config.workspace_cluster_roles()
        )


class RbacBootstrapper:
    """
    Idempotent reconciliation of workspace RBAC objects.

    Running ``prepare`` any number of times, sequentially or concurrently,
    converges to the same set of objects.
    """

    def __init__(self, k8s_client: KubernetesClient):
        self.client = k8s_client
        self.logger = logging.getLogger(__name__)

    def prepare(self, service_account_name: str, namespace: str,
                extra_cluster_role_names: Iterable[str] = ()) -> None:
        """
        Ensure the service account and its roles and bindings exist.

        Args:
            service_account_name: Workspace service account name
            namespace: Target namespace
            extra_cluster_role_names: ClusterRoles to bind in addition to the base roles

        Raises:
            InfrastructureError: If an object could not be read or created
        """
        self._ensure_service_account(namespace, service_account_name)

        for role in BASE_ROLES:
            self._ensure_role_with_binding(namespace, service_account_name, role)

        if self._metrics_supported():
            try:
                self._ensure_role_with_binding(namespace, service_account_name, METRICS_ROLE)
            except K8sAuthorizationError as e:
                self.logger.warning(
                    f"Not allowed to grant metrics access to {service_account_name} in {namespace}: {e}"
                )

        for cluster_role in sorted(set(extra_cluster_role_names)):
            if self.client.get_cluster_role(cluster_role) is None:
                self.logger.warning(
                    f"Cluster role {cluster_role} does not exist, skipping its binding "
                    f"for service account {service_account_name}"
                )
                continue
            self._ensure_binding(
                namespace, service_account_name, cluster_role, "ClusterRole", cluster_role
            )

        self.logger.info(f"RBAC for service account {service_account_name} prepared in {namespace}")

    def _ensure_service_account(self, namespace: str, name: str) -> None:
        try:
            self._ensure(
                f"service account {namespace}/{name}",
                lambda: self.client.get_service_account(namespace, name),
                lambda: self.client.create_service_account(namespace, name)
            )
        except InfrastructureError as e:
            raise InfrastructureError(
                f"Failed to prepare service account {name} in namespace {namespace}: {e}", cause=e
            ) from e

    def _ensure_role_with_binding(self, namespace: str, service_account_name: str,
                                  role: RoleSpec) -> None:
        self._ensure(
            f"role {namespace}/{role.name}",
            lambda: self.client.get_role(namespace, role.name),
            lambda: self.client.create_role(namespace, role.name, role.rules)
        )
        self._ensure_binding(
            namespace, service_account_name, role.binding_suffix, "Role", role.name
        )

    def _ensure_binding(self, namespace: str, service_account_name: str, suffix: str,
                        role_kind: str, role_name: str) -> None:
        binding_name = f"{service_account_name}-{suffix}"
        subjects = [{
            'kind': 'ServiceAccount',
            'name': service_account_name,
            'namespace': namespace
        }]
        self._ensure(
            f"role binding {namespace}/{binding_name}",
            lambda: self.client.get_role_binding(namespace, binding_name),
            lambda: self.client.create_role_binding(
                namespace, binding_name, role_kind, role_name, subjects
            )
        )

    def _ensure(self, description: str, read: Callable[[], Optional[Dict[str, Any]]],
                create: Callable[[], Any]) -> bool:
        """Create an object unless it exists. Returns True when this call created it."""
        if read() is not None:
            self.logger.debug(f"{description} already exists")
            return False
        try:
            create()
        except K8sConflictError:
            # Created concurrently by another bootstrap
            self.logger.debug(f"{description} was created concurrently")
            return False
        return True

    def _metrics_supported(self) -> bool:
        try:
            return self.client.supports_api_path(METRICS_API_PATH)
        except K8sAuthorizationError as e:
            self.logger.warning(f"Not allowed to probe {METRICS_API_PATH}, metrics role disabled: {e}")
            return False
