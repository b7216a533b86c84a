"""
User namespace provisioning outside of a workspace start.
"""

import logging

from .configurators import NamespaceConfigurator, UserPreferencesConfigurator, UserProfileConfigurator
from .errors import InfrastructureError
from .factory import NamespaceFactory
from .models import NamespaceMeta, PreferenceStore, ResolutionContext, RuntimeIdentity


class NamespaceProvisioner:
    """
    Prepares a user's default namespace ahead of any workspace.

    Besides getting or creating the namespace, it publishes the user's profile
    and preferences secrets so that workspaces started later can mount them.
    """

    def __init__(self, factory: NamespaceFactory, profile_configurator: NamespaceConfigurator,
                 preferences_configurator: NamespaceConfigurator):
        self.factory = factory
        self.profile_configurator = profile_configurator
        self.preferences_configurator = preferences_configurator
        self.logger = logging.getLogger(__name__)

    def provision(self, context: ResolutionContext) -> NamespaceMeta:
        """
        Get or create the user's default namespace and configure it.

        Args:
            context: Identity of the user

        Returns:
            NamespaceMeta: The provisioned namespace

        Raises:
            InfrastructureError: If the namespace could not be obtained or configured
        """
        default_namespace = self.factory.resolve(context)
        identity = RuntimeIdentity(
            workspace_id=None,
            owner_id=context.user_id,
            owner_name=context.user_name,
            infrastructure_namespace=default_namespace
        )
        access = self.factory.get_or_create(identity)

        meta = self.factory.fetch_namespace(access.name)
        if meta is None:
            raise InfrastructureError(f"Not able to find namespace {access.name}")

        self.profile_configurator.configure(context, access.name)
        self.preferences_configurator.configure(context, access.name)
        self.logger.info(f"Provisioned namespace {access.name} for user {context.user_name}")
        return meta


def create_namespace_provisioner(factory: NamespaceFactory,
                                 preference_store: PreferenceStore) -> NamespaceProvisioner:
    """Wire a NamespaceProvisioner sharing the factory's cluster client."""
    return NamespaceProvisioner(
        factory,
        UserProfileConfigurator(factory.client),
        UserPreferencesConfigurator(factory.client, preference_store)
    )
