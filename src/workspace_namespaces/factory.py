"""
Namespace factory.

Entry point of the provisioner: validates requested namespace names, resolves
the namespace of a workspace, fetches or creates it, applies the namespace
configurators and bootstraps workspace RBAC for newly created namespaces.
"""

import logging
from typing import Dict, List, Optional

from .config import OPENSHIFT_INFRASTRUCTURE, NamespaceConfig
from .configurators import NamespaceConfigurator, default_configurators
from .errors import InfrastructureError, ValidationError
from .flavors import KubernetesNamespaceFlavor, NamespaceFlavor, OpenShiftProjectFlavor
from .k8s_client import K8sAuthorizationError, KubernetesClient
from .lister import NamespaceLister
from .models import (
    WORKSPACE_NAMESPACE_ATTRIBUTE,
    NamespaceMeta,
    PreferenceStore,
    ResolutionContext,
    RuntimeIdentity,
)
from .names import is_valid_namespace_name
from .namespace_access import NamespaceAccess
from .rbac import RbacBootstrapper, RbacSpec
from .resolver import NamespaceNameResolver


class NamespaceFactory:
    """
    Decides whether a workspace namespace may be used, reused or created.

    Args:
        config: Namespace configuration
        flavor: Cluster flavor the namespaces live on
        k8s_client: Cluster API client
        resolver: Namespace name resolver
        lister: Namespace lister
        configurators: Steps applied, in order, to every obtained namespace
        rbac: Bootstrapper for workspace service account RBAC
    """

    def __init__(self, config: NamespaceConfig, flavor: NamespaceFlavor, k8s_client: KubernetesClient,
                 resolver: NamespaceNameResolver, lister: NamespaceLister,
                 configurators: List[NamespaceConfigurator], rbac: RbacBootstrapper):
        self.config = config
        self.flavor = flavor
        self.client = k8s_client
        self.resolver = resolver
        self.lister = lister
        self.configurators = configurators
        self.rbac = rbac
        self.logger = logging.getLogger(__name__)

    def resolve(self, context: ResolutionContext, recorded_namespace: Optional[str] = None) -> str:
        return self.resolver.resolve(context, recorded_namespace)

    def check_allowed(self, name: str, context: ResolutionContext) -> None:
        """
        Check that a user may place workspaces in the requested namespace.

        Args:
            name: Requested namespace name
            context: Identity of the requesting user

        Raises:
            ValidationError: If the namespace may not be used
        """
        if self.config.allow_user_defined_namespaces:
            if not is_valid_namespace_name(name):
                raise ValidationError(
                    f"Namespace name '{name}' is invalid. It must be at most 63 lowercase "
                    f"alphanumeric characters or '-', and must start and end with an alphanumeric character."
                )
            return

        default_namespace = self.resolver.resolve(context)
        if name != default_namespace:
            raise ValidationError(
                f"User defined namespaces are not allowed. Only the default namespace "
                f"'{default_namespace}' is available."
            )

    def fetch_namespace(self, name: str) -> Optional[NamespaceMeta]:
        """
        Fetch a namespace by name.

        Returns:
            Optional[NamespaceMeta]: Namespace description, None when it does not
            exist or the caller may not read it

        Raises:
            InfrastructureError: On any other cluster failure
        """
        try:
            manifest = self.flavor.fetch(name)
        except K8sAuthorizationError:
            return None
        except InfrastructureError as e:
            raise InfrastructureError(
                f"Error occurred when tried to fetch {self.flavor.kind} '{name}'. Cause: {e}", cause=e
            ) from e

        if manifest is None:
            return None
        return self.flavor.as_meta(manifest)

    def list_namespaces(self, context: ResolutionContext) -> List[NamespaceMeta]:
        return self.lister.list_namespaces(context)

    def access(self, workspace_id: Optional[str], name: str) -> NamespaceAccess:
        """Namespace handle without any preparation, used when recovering running workspaces."""
        return NamespaceAccess(
            name, workspace_id, self.flavor, self.client, self.config.max_parallel_operations
        )

    def get_or_create(self, identity: RuntimeIdentity) -> NamespaceAccess:
        """
        Obtain the namespace of a workspace runtime, creating it when permitted.

        Args:
            identity: Identity of the workspace runtime

        Returns:
            NamespaceAccess: Handle bound to the namespace

        Raises:
            InfrastructureError: If the namespace is missing and may not be
                created, or the cluster reports a failure
        """
        context = identity.resolution_context()
        name = self.resolver.resolve(context, identity.infrastructure_namespace)
        access = self.access(identity.workspace_id, name)

        if self.fetch_namespace(name) is None:
            self._check_can_create(identity, context, name)

            labels = self.config.labels() if self.config.label_namespaces else {}
            annotations = (self.resolver.evaluate_annotations(context)
                           if self.config.annotate_namespaces else {})
            access.prepare(True, labels, annotations)

            self._configure(context, name)
            if self.config.workspace_service_account_enabled():
                spec = RbacSpec.from_config(self.config)
                self.rbac.prepare(spec.service_account_name, name, spec.extra_cluster_role_names)
        else:
            self.logger.debug(f"Reusing {self.flavor.kind} {name} for workspace {identity.workspace_id}")
            self._configure(context, name)

        return access

    def get_namespace_name(self, workspace_id: str, attributes: Dict[str, str],
                           context: Optional[ResolutionContext] = None) -> str:
        """
        Namespace a stored workspace is assigned to.

        Args:
            workspace_id: Workspace id
            attributes: Workspace attributes
            context: Identity of the current user, if there is one

        Returns:
            str: The recorded namespace, or the default one for legacy workspaces
            and workspaces recorded with an invalid name
        """
        namespace = attributes.get(WORKSPACE_NAMESPACE_ATTRIBUTE)
        if namespace is None and context is not None:
            namespace = self.resolver.resolve(context)
            self.logger.warning(
                f"Workspace '{workspace_id}' doesn't have an explicit namespace assigned. "
                f"The legacy namespace resolution resolved it to '{namespace}'."
            )

        if namespace is not None and not is_valid_namespace_name(namespace):
            if context is None:
                self.logger.warning(
                    f"The namespace '{namespace}' of the workspace '{workspace_id}' is not valid "
                    f"and there is no current user to recover the default namespace."
                )
            else:
                default_namespace = self.resolver.resolve(context)
                self.logger.warning(
                    f"The namespace '{namespace}' of the workspace '{workspace_id}' is not valid. "
                    f"Using the default namespace '{default_namespace}' instead."
                )
                namespace = default_namespace

        if namespace is None:
            raise InfrastructureError(f"Unable to determine the namespace of workspace '{workspace_id}'")
        return namespace

    def delete_if_managed(self, workspace_id: str, namespace_name: str) -> bool:
        """
        Delete the namespace when it was created for this workspace only.

        A namespace is managed when its name contains the workspace id.

        Returns:
            bool: True if the namespace was deleted
        """
        if not namespace_name or workspace_id not in namespace_name:
            return False

        access = self.access(workspace_id, namespace_name)
        access.cleanup()
        access.delete()
        return True

    def _check_can_create(self, identity: RuntimeIdentity, context: ResolutionContext, name: str) -> None:
        if not self.config.namespace_creation_allowed:
            raise InfrastructureError(
                f"Namespace '{name}' does not exist and creation is not allowed"
            )

        if identity.infrastructure_namespace:
            default_namespace = self.resolver.resolve(context)
            if default_namespace != identity.infrastructure_namespace:
                raise InfrastructureError(
                    f"Namespace '{name}' of workspace '{identity.workspace_id}' not found and "
                    f"recreation into a newer default '{default_namespace}' is not permitted"
                )

    def _configure(self, context: ResolutionContext, name: str) -> None:
        for configurator in self.configurators:
            self.logger.debug(f"Applying {type(configurator).__name__} to {name}")
            configurator.configure(context, name)


def create_namespace_factory(config: NamespaceConfig, k8s_client: KubernetesClient,
                             preference_store: PreferenceStore,
                             configurators: Optional[List[NamespaceConfigurator]] = None) -> NamespaceFactory:
    """
    Wire a NamespaceFactory for the configured cluster flavor.

    Args:
        config: Namespace configuration, validated here
        k8s_client: Authenticated cluster API client
        preference_store: Per-user preference persistence
        configurators: Overrides the default configurators

    Returns:
        NamespaceFactory: Ready to use factory

    Raises:
        ConfigurationError: If the configuration cannot be used
    """
    config.validate()

    if config.infrastructure == OPENSHIFT_INFRASTRUCTURE:
        flavor: NamespaceFlavor = OpenShiftProjectFlavor(k8s_client)
    else:
        flavor = KubernetesNamespaceFlavor(k8s_client)

    def exists(name: str) -> bool:
        try:
            return flavor.fetch(name) is not None
        except K8sAuthorizationError:
            return False

    resolver = NamespaceNameResolver(config, preference_store, exists=exists)
    lister = NamespaceLister(config, flavor, resolver)
    if configurators is None:
        configurators = default_configurators(config, k8s_client, flavor, resolver)

    return NamespaceFactory(
        config=config,
        flavor=flavor,
        k8s_client=k8s_client,
        resolver=resolver,
        lister=lister,
        configurators=configurators,
        rbac=RbacBootstrapper(k8s_client)
    )
