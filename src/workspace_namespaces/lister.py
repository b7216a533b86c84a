"""
Listing of the namespaces available to a user.
"""

import logging
from typing import Dict, List, Optional

from .config import NamespaceConfig
from .flavors import NamespaceFlavor, manifest_annotations
from .k8s_client import K8sAuthorizationError
from .models import DEFAULT_ATTRIBUTE, NamespaceMeta, ResolutionContext
from .resolver import NamespaceNameResolver


def matches_annotations(annotations: Dict[str, str], required: Dict[str, str]) -> bool:
    """True when every required annotation is present with the same value."""
    return all(annotations.get(key) == value for key, value in required.items())


class NamespaceLister:
    """
    Enumerates namespaces prepared for a user.

    Candidates are selected on the cluster with the configured label selector
    and then filtered on the user's evaluated annotations. The user's default
    namespace is always part of the result.
    """

    def __init__(self, config: NamespaceConfig, flavor: NamespaceFlavor, resolver: NamespaceNameResolver):
        self.config = config
        self.flavor = flavor
        self.resolver = resolver
        self.logger = logging.getLogger(__name__)

    def list_namespaces(self, context: ResolutionContext) -> List[NamespaceMeta]:
        """
        List namespaces for the given user.

        Args:
            context: Identity of the current user

        Returns:
            List[NamespaceMeta]: Matching namespaces in cluster order, the
            default namespace marked with ``default=true``

        Raises:
            InfrastructureError: If the cluster cannot be queried
        """
        result = self._find_prepared(context)

        default_name = self._default_name(context)
        if default_name is None:
            return result

        for meta in result:
            if meta.name == default_name:
                meta.attributes[DEFAULT_ATTRIBUTE] = "true"
                return result

        result.append(self._default_entry(default_name))
        return result

    def _find_prepared(self, context: ResolutionContext) -> List[NamespaceMeta]:
        # Selection and owner filtering ignore the label/annotate switches,
        # those only govern what gets written on creation.
        label_selector = self.config.label_selector()
        if not label_selector:
            return []

        required = self.resolver.evaluate_annotations(context)

        try:
            manifests = self.flavor.list(label_selector)
        except K8sAuthorizationError as e:
            self.logger.warning(
                f"User {context.user_name} is not allowed to list {self.flavor.kind}s, "
                f"falling back to the default one: {e}"
            )
            return []

        return [
            self.flavor.as_meta(manifest)
            for manifest in manifests
            if matches_annotations(manifest_annotations(manifest), required)
        ]

    def _default_name(self, context: ResolutionContext) -> Optional[str]:
        if not self.resolver.template:
            return None
        return self.resolver.resolve(context)

    def _default_entry(self, name: str) -> NamespaceMeta:
        try:
            manifest = self.flavor.fetch(name)
        except K8sAuthorizationError:
            manifest = None

        if manifest is None:
            meta = NamespaceMeta(name=name)
        else:
            meta = self.flavor.as_meta(manifest)
        meta.attributes[DEFAULT_ATTRIBUTE] = "true"
        return meta
