"""
Per-user workspace namespace provisioning for Kubernetes and OpenShift.

Resolves, creates and bootstraps the namespace a user's workspaces run in.
"""

from .config import NamespaceConfig, load_config_from_env, parse_cluster_role_names
from .errors import (
    NamespaceProvisioningError,
    ConfigurationError,
    ValidationError,
    InfrastructureError
)
from .factory import NamespaceFactory, create_namespace_factory
from .k8s_client import KubernetesClient, K8sClientConfig
from .lister import NamespaceLister
from .models import (
    ResolutionContext,
    RuntimeIdentity,
    NamespaceMeta,
    PreferenceStore,
    InMemoryPreferenceStore
)
from .names import normalize_namespace_name, is_valid_namespace_name
from .namespace_access import NamespaceAccess
from .provisioner import NamespaceProvisioner, create_namespace_provisioner
from .rbac import RbacBootstrapper, RbacSpec
from .resolver import NamespaceNameResolver

__all__ = [
    # Configuration
    'NamespaceConfig',
    'load_config_from_env',
    'parse_cluster_role_names',
    # Errors
    'NamespaceProvisioningError',
    'ConfigurationError',
    'ValidationError',
    'InfrastructureError',
    # Provisioning
    'NamespaceFactory',
    'create_namespace_factory',
    'NamespaceNameResolver',
    'NamespaceLister',
    'NamespaceAccess',
    'NamespaceProvisioner',
    'create_namespace_provisioner',
    'RbacBootstrapper',
    'RbacSpec',
    # Cluster client
    'KubernetesClient',
    'K8sClientConfig',
    # Model
    'ResolutionContext',
    'RuntimeIdentity',
    'NamespaceMeta',
    'PreferenceStore',
    'InMemoryPreferenceStore',
    'normalize_namespace_name',
    'is_valid_namespace_name'
]
