"""
Namespace configurators.

Post-creation steps applied to a workspace namespace, in declared order, every
time the namespace is obtained. Each step checks whether its object is already
in place and does nothing when it is.
"""

import base64
import logging
import re
from typing import Dict, List, Protocol, runtime_checkable

from .config import NamespaceConfig
from .errors import InfrastructureError
from .flavors import NamespaceFlavor, manifest_annotations, manifest_labels
from .k8s_client import K8sAuthorizationError, K8sConflictError, KubernetesClient
from .models import PreferenceStore, ResolutionContext
from .rbac import WORKSPACE_CREDENTIALS_SECRET_NAME, WORKSPACE_PREFERENCES_CONFIGMAP_NAME
from .resolver import NamespaceNameResolver

USER_PROFILE_SECRET_NAME = "user-profile"
USER_PROFILE_SECRET_MOUNT_PATH = "/config/user/profile"
USER_PREFERENCES_SECRET_NAME = "user-preferences"
USER_PREFERENCES_SECRET_MOUNT_PATH = "/config/user/preferences"

# Secret data keys are limited to these characters and this length
PREFERENCE_NAME_INVALID_CHARS = re.compile(r'[^-._a-zA-Z0-9]+')
PREFERENCE_NAME_MAX_LENGTH = 253

DEV_WORKSPACE_MOUNT_LABEL = "controller.devfile.io/mount-to-devworkspace"
DEV_WORKSPACE_WATCH_SECRET_LABEL = "controller.devfile.io/watch-secret"
DEV_WORKSPACE_MOUNT_PATH_ANNOTATION = "controller.devfile.io/mount-path"
DEV_WORKSPACE_MOUNT_AS_ANNOTATION = "controller.devfile.io/mount-as"


@runtime_checkable
class NamespaceConfigurator(Protocol):
    """A step applied to a workspace namespace each time it is obtained."""

    def configure(self, context: ResolutionContext, namespace_name: str) -> None:
        ...


def normalize_preference_name(name: str) -> str:
    """Turn a preference name into a valid secret data key."""
    name = re.sub(r'-+', '-', PREFERENCE_NAME_INVALID_CHARS.sub('-', name))
    return name[:PREFERENCE_NAME_MAX_LENGTH]


def _missing_entries(actual: Dict[str, str], expected: Dict[str, str]) -> Dict[str, str]:
    return {key: value for key, value in expected.items() if actual.get(key) != value}


def _decode_secret_data(secret: Dict) -> Dict[str, str]:
    data = secret.get('data') or {}
    return {key: base64.b64decode(value).decode('utf-8') for key, value in data.items()}


class NamespaceLabelsConfigurator:
    """Adds the configured labels and evaluated annotations missing from the namespace."""

    def __init__(self, config: NamespaceConfig, flavor: NamespaceFlavor, resolver: NamespaceNameResolver):
        self.config = config
        self.flavor = flavor
        self.resolver = resolver
        self.logger = logging.getLogger(__name__)

    def configure(self, context: ResolutionContext, namespace_name: str) -> None:
        if not self.config.label_namespaces and not self.config.annotate_namespaces:
            return

        try:
            manifest = self.flavor.fetch(namespace_name)
        except K8sAuthorizationError as e:
            self.logger.warning(f"Not allowed to read {namespace_name}, labels left as they are: {e}")
            return
        if manifest is None:
            return

        labels = {}
        if self.config.label_namespaces:
            labels = _missing_entries(manifest_labels(manifest), self.config.labels())
        annotations = {}
        if self.config.annotate_namespaces:
            annotations = _missing_entries(
                manifest_annotations(manifest), self.resolver.evaluate_annotations(context)
            )

        if not labels and not annotations:
            return

        try:
            self.flavor.patch(namespace_name, labels, annotations)
            self.logger.info(f"Labeled namespace {namespace_name}")
        except K8sAuthorizationError as e:
            self.logger.warning(f"Not allowed to label namespace {namespace_name}: {e}")


class CredentialsSecretConfigurator:
    """Ensures the workspace credentials secret exists."""

    def __init__(self, k8s_client: KubernetesClient):
        self.client = k8s_client
        self.logger = logging.getLogger(__name__)

    def configure(self, context: ResolutionContext, namespace_name: str) -> None:
        if self.client.get_secret(namespace_name, WORKSPACE_CREDENTIALS_SECRET_NAME) is not None:
            return
        try:
            self.client.create_secret(namespace_name, WORKSPACE_CREDENTIALS_SECRET_NAME, secret_type="Opaque")
        except K8sConflictError:
            self.logger.debug(f"Secret {WORKSPACE_CREDENTIALS_SECRET_NAME} created concurrently in {namespace_name}")


class PreferencesConfigMapConfigurator:
    """Ensures the workspace preferences config map exists."""

    def __init__(self, k8s_client: KubernetesClient):
        self.client = k8s_client
        self.logger = logging.getLogger(__name__)

    def configure(self, context: ResolutionContext, namespace_name: str) -> None:
        if self.client.get_config_map(namespace_name, WORKSPACE_PREFERENCES_CONFIGMAP_NAME) is not None:
            return
        try:
            self.client.create_config_map(namespace_name, WORKSPACE_PREFERENCES_CONFIGMAP_NAME)
        except K8sConflictError:
            self.logger.debug(
                f"Config map {WORKSPACE_PREFERENCES_CONFIGMAP_NAME} created concurrently in {namespace_name}"
            )


class UserPermissionConfigurator:
    """Binds the configured user cluster roles to the namespace owner."""

    def __init__(self, config: NamespaceConfig, k8s_client: KubernetesClient):
        self.cluster_roles = config.user_roles()
        self.client = k8s_client
        self.logger = logging.getLogger(__name__)

    def configure(self, context: ResolutionContext, namespace_name: str) -> None:
        for cluster_role in sorted(self.cluster_roles):
            if self.client.get_role_binding(namespace_name, cluster_role) is not None:
                continue
            subjects = [{
                'apiGroup': 'rbac.authorization.k8s.io',
                'kind': 'User',
                'name': context.user_name,
                'namespace': namespace_name
            }]
            try:
                self.client.create_role_binding(
                    namespace_name, cluster_role, "ClusterRole", cluster_role, subjects
                )
            except K8sConflictError:
                self.logger.debug(f"Role binding {cluster_role} created concurrently in {namespace_name}")


class UserProfileConfigurator:
    """
    Publishes the user's id and name in the ``user-profile`` secret.

    The secret is labeled for mounting into workspaces and replaced when its
    content no longer matches the user.
    """

    def __init__(self, k8s_client: KubernetesClient):
        self.client = k8s_client
        self.logger = logging.getLogger(__name__)

    def configure(self, context: ResolutionContext, namespace_name: str) -> None:
        profile = {'id': context.user_id, 'name': context.user_name}
        labels = {
            DEV_WORKSPACE_MOUNT_LABEL: "true",
            DEV_WORKSPACE_WATCH_SECRET_LABEL: "true",
        }
        annotations = {
            DEV_WORKSPACE_MOUNT_AS_ANNOTATION: "file",
            DEV_WORKSPACE_MOUNT_PATH_ANNOTATION: USER_PROFILE_SECRET_MOUNT_PATH,
        }

        existing = self.client.get_secret(namespace_name, USER_PROFILE_SECRET_NAME)
        if existing is None:
            try:
                self.client.create_secret(
                    namespace_name, USER_PROFILE_SECRET_NAME, string_data=profile,
                    labels=labels, annotations=annotations
                )
                return
            except K8sConflictError:
                existing = self.client.get_secret(namespace_name, USER_PROFILE_SECRET_NAME)

        if existing is not None and self._is_current(existing, profile, labels):
            return

        self.client.replace_secret(
            namespace_name, USER_PROFILE_SECRET_NAME, string_data=profile,
            labels=labels, annotations=annotations
        )
        self.logger.info(f"Updated user profile secret in {namespace_name}")

    @staticmethod
    def _is_current(secret: Dict, profile: Dict[str, str], labels: Dict[str, str]) -> bool:
        return (_decode_secret_data(secret) == profile
                and not _missing_entries(manifest_labels(secret), labels))



class UserPreferencesConfigurator:
    """
    Publishes the user's stored preferences in the ``user-preferences`` secret.

    Preference names are normalized into valid secret keys. Nothing is written
    for a user without preferences.
    """

    def __init__(self, k8s_client: KubernetesClient, preference_store: PreferenceStore):
        self.client = k8s_client
        self.preference_store = preference_store
        self.logger = logging.getLogger(__name__)

    def configure(self, context: ResolutionContext, namespace_name: str) -> None:
        try:
            preferences = self.preference_store.find(context.user_id)
        except Exception as e:
            raise InfrastructureError(
                f"Preferences of user with id:{context.user_id} cannot be retrieved.", cause=e
            ) from e

        if not preferences:
            self.logger.debug(f"User {context.user_id} has no preferences, {USER_PREFERENCES_SECRET_NAME} not created")
            return

        data = {normalize_preference_name(key): value for key, value in preferences.items()}
        labels = {DEV_WORKSPACE_MOUNT_LABEL: "true"}
        annotations = {
            DEV_WORKSPACE_MOUNT_AS_ANNOTATION: "file",
            DEV_WORKSPACE_MOUNT_PATH_ANNOTATION: USER_PREFERENCES_SECRET_MOUNT_PATH,
        }

        existing = self.client.get_secret(namespace_name, USER_PREFERENCES_SECRET_NAME)
        if existing is None:
            try:
                self.client.create_secret(
                    namespace_name, USER_PREFERENCES_SECRET_NAME, string_data=data,
                    labels=labels, annotations=annotations
                )
                return
            except K8sConflictError:
                existing = self.client.get_secret(namespace_name, USER_PREFERENCES_SECRET_NAME)

        if existing is not None and _decode_secret_data(existing) == data:
            return

        self.client.replace_secret(
            namespace_name, USER_PREFERENCES_SECRET_NAME, string_data=data,
            labels=labels, annotations=annotations
        )
        self.logger.info(f"Updated user preferences secret in {namespace_name}")

def default_configurators(config: NamespaceConfig, k8s_client: KubernetesClient, flavor: NamespaceFlavor,
                          resolver: NamespaceNameResolver) -> List[NamespaceConfigurator]:
    """
    Build the configurators in the order they are applied.

    Returns:
        List[NamespaceConfigurator]: Steps applied to every obtained namespace
    """
    return [
        NamespaceLabelsConfigurator(config, flavor, resolver),
        CredentialsSecretConfigurator(k8s_client),
        PreferencesConfigMapConfigurator(k8s_client),
        UserPermissionConfigurator(config, k8s_client),
        UserProfileConfigurator(k8s_client),
    ]
