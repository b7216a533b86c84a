"""
Configuration for workspace namespace provisioning.

Values are typically sourced from deployment environment variables using
the ``CHE_INFRA_KUBERNETES_*`` naming of the Che server properties.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional, Set

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

USERNAME_PLACEHOLDER = "<username>"
USERID_PLACEHOLDER = "<userid>"

KUBERNETES_INFRASTRUCTURE = "kubernetes"
OPENSHIFT_INFRASTRUCTURE = "openshift"
SUPPORTED_INFRASTRUCTURES = {KUBERNETES_INFRASTRUCTURE, OPENSHIFT_INFRASTRUCTURE}


def parse_key_value_pairs(value: Optional[str], setting: str = "value") -> Dict[str, str]:
    """
    Parse a ``key1=value1,key2=value2`` string into an ordered dict.

    Args:
        value: Comma-separated pairs, may be empty
        setting: Setting name used in error messages

    Returns:
        Dict[str, str]: Parsed pairs in declaration order

    Raises:
        ConfigurationError: When an entry is not of the form key=value
    """
    result: Dict[str, str] = {}
    if not value or not value.strip():
        return result

    for entry in value.split(','):
        entry = entry.strip()
        if not entry:
            continue
        key, sep, item = entry.partition('=')
        if not sep or not key.strip():
            raise ConfigurationError(
                f"Invalid entry '{entry}' in {setting}: expected the 'key=value' format"
            )
        result[key.strip()] = item.strip()
    return result


def parse_cluster_role_names(value: Optional[str]) -> Set[str]:
    """
    Parse a comma-separated list of cluster role names.

    Entries are trimmed, empty entries are discarded and duplicates collapse.
    """
    if not value:
        return set()
    return {name.strip() for name in value.split(',') if name.strip()}


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() == 'true'


@dataclass
class NamespaceConfig:
    """Configuration for namespace resolution, creation and bootstrap"""
    # Name resolution
    default_namespace_template: Optional[str] = "<username>-che"
    allow_user_defined_namespaces: bool = False

    # Creation
    namespace_creation_allowed: bool = True
    label_namespaces: bool = True
    annotate_namespaces: bool = True
    namespace_labels: str = (
        "app.kubernetes.io/part-of=che.eclipse.org,"
        "app.kubernetes.io/component=workspaces-namespace"
    )
    namespace_annotations: str = "che.eclipse.org/username=<username>"

    # RBAC bootstrap
    service_account_name: str = ""
    allow_workspace_service_account: bool = True
    workspace_sa_cluster_roles: str = ""
    user_cluster_roles: str = ""

    # Cluster flavor: "kubernetes" or "openshift"
    infrastructure: str = KUBERNETES_INFRASTRUCTURE

    # Worker pool size for fan-out operations such as cleanup
    max_parallel_operations: int = 5

    def validate(self) -> None:
        """
        Validate settings that can be checked without a cluster.

        Raises:
            ConfigurationError: When the configuration cannot be used
        """
        if self.infrastructure not in SUPPORTED_INFRASTRUCTURES:
            raise ConfigurationError(
                f"Unsupported infrastructure '{self.infrastructure}', "
                f"expected one of {sorted(SUPPORTED_INFRASTRUCTURES)}"
            )

        for key, value in self.labels().items():
            if USERNAME_PLACEHOLDER in key + value or USERID_PLACEHOLDER in key + value:
                raise ConfigurationError(
                    f"Namespace label '{key}={value}' must not contain user placeholders"
                )

        for key in self.annotations():
            if USERNAME_PLACEHOLDER in key or USERID_PLACEHOLDER in key:
                raise ConfigurationError(
                    f"Namespace annotation key '{key}' must not contain user placeholders"
                )

        if self.max_parallel_operations < 1:
            raise ConfigurationError("max_parallel_operations must be at least 1")

    def labels(self) -> Dict[str, str]:
        return parse_key_value_pairs(self.namespace_labels, "namespace labels")

    def annotations(self) -> Dict[str, str]:
        return parse_key_value_pairs(self.namespace_annotations, "namespace annotations")

    def label_selector(self) -> str:
        """Label selector matching namespaces prepared for workspaces."""
        return ','.join(f"{key}={value}" for key, value in self.labels().items())

    def workspace_cluster_roles(self) -> Set[str]:
        return parse_cluster_role_names(self.workspace_sa_cluster_roles)

    def user_roles(self) -> Set[str]:
        return parse_cluster_role_names(self.user_cluster_roles)

    def workspace_service_account_enabled(self) -> bool:
        return self.allow_workspace_service_account and bool(self.service_account_name.strip())


def load_config_from_env(config: Optional[NamespaceConfig] = None) -> NamespaceConfig:
    """
    Overlay environment variables on a configuration object.

    Args:
        config: Base configuration, defaults are used when omitted

    Returns:
        NamespaceConfig: The updated configuration
    """
    config = config or NamespaceConfig()

    if os.getenv("CHE_INFRA_KUBERNETES_NAMESPACE_DEFAULT") is not None:
        config.default_namespace_template = os.getenv("CHE_INFRA_KUBERNETES_NAMESPACE_DEFAULT")
    if os.getenv("CHE_INFRA_KUBERNETES_NAMESPACE_LABELS") is not None:
        config.namespace_labels = os.getenv("CHE_INFRA_KUBERNETES_NAMESPACE_LABELS")
    if os.getenv("CHE_INFRA_KUBERNETES_NAMESPACE_ANNOTATIONS") is not None:
        config.namespace_annotations = os.getenv("CHE_INFRA_KUBERNETES_NAMESPACE_ANNOTATIONS")
    if os.getenv("CHE_INFRA_KUBERNETES_SERVICE_ACCOUNT_NAME") is not None:
        config.service_account_name = os.getenv("CHE_INFRA_KUBERNETES_SERVICE_ACCOUNT_NAME")
    if os.getenv("CHE_INFRA_KUBERNETES_WORKSPACE_SA_CLUSTER_ROLES") is not None:
        config.workspace_sa_cluster_roles = os.getenv("CHE_INFRA_KUBERNETES_WORKSPACE_SA_CLUSTER_ROLES")
    if os.getenv("CHE_INFRA_KUBERNETES_USER_CLUSTER_ROLES") is not None:
        config.user_cluster_roles = os.getenv("CHE_INFRA_KUBERNETES_USER_CLUSTER_ROLES")
    if os.getenv("CHE_INFRASTRUCTURE_ACTIVE"):
        config.infrastructure = os.getenv("CHE_INFRASTRUCTURE_ACTIVE").strip().lower()

    flags = {
        "CHE_INFRA_KUBERNETES_NAMESPACE_ALLOW_USER_DEFINED": "allow_user_defined_namespaces",
        "CHE_INFRA_KUBERNETES_NAMESPACE_CREATION_ALLOWED": "namespace_creation_allowed",
        "CHE_INFRA_KUBERNETES_NAMESPACE_LABEL": "label_namespaces",
        "CHE_INFRA_KUBERNETES_NAMESPACE_ANNOTATE": "annotate_namespaces",
        "CHE_INFRA_KUBERNETES_WORKSPACE_SA_ALLOWED": "allow_workspace_service_account",
    }
    for env_name, attribute in flags.items():
        value = _env_bool(env_name)
        if value is not None:
            setattr(config, attribute, value)

    logger.debug(f"Loaded namespace configuration: {config}")
    return config
