"""
Namespace name resolution.

Computes the namespace a workspace should live in from, in order of
precedence, the namespace recorded on the workspace, the namespace remembered
in the user's preferences and the configured default template.
"""

import logging
from typing import Callable, Dict, Optional

from .config import USERID_PLACEHOLDER, USERNAME_PLACEHOLDER, NamespaceConfig
from .errors import ConfigurationError, InfrastructureError
from .models import (
    NAMESPACE_PREFERENCE,
    NAMESPACE_TEMPLATE_PREFERENCE,
    PreferenceStore,
    ResolutionContext,
)
from .names import (
    escape_protected_prefix,
    has_protected_prefix,
    is_valid_namespace_name,
    normalize_namespace_name,
    with_random_suffix,
)

MAX_SUFFIX_ATTEMPTS = 10


def evaluate_placeholders(value: str, context: ResolutionContext) -> str:
    """Substitute ``<username>`` and ``<userid>`` with values from the context."""
    return (value
            .replace(USERNAME_PLACEHOLDER, context.user_name or "")
            .replace(USERID_PLACEHOLDER, context.user_id or ""))


class NamespaceNameResolver:
    """
    Resolves the target namespace name for a user or workspace.

    Once a workspace has been given a namespace it keeps it: the recorded name
    wins over anything derived from preferences or templates, and preferences
    are only trusted while the template they were evaluated from is unchanged.
    """

    def __init__(self, config: NamespaceConfig, preference_store: PreferenceStore,
                 exists: Optional[Callable[[str], bool]] = None):
        """
        Initialize the resolver.

        Args:
            config: Namespace configuration
            preference_store: Per-user preference persistence
            exists: Optional probe reporting whether a namespace already exists

        Raises:
            ConfigurationError: If no default template is configured while
                user defined namespaces are not allowed
        """
        self.config = config
        self.preference_store = preference_store
        self.exists = exists or (lambda name: False)
        self.logger = logging.getLogger(__name__)

        if not self.template and not config.allow_user_defined_namespaces:
            raise ConfigurationError(
                "A default namespace template must be configured when user defined "
                "namespaces are not allowed"
            )

    @property
    def template(self) -> Optional[str]:
        template = self.config.default_namespace_template
        return template.strip() if template and template.strip() else None

    def resolve(self, context: ResolutionContext, recorded_namespace: Optional[str] = None) -> str:
        """
        Resolve the namespace name.

        Args:
            context: Identity the name is resolved for
            recorded_namespace: Namespace literally recorded on the workspace, if any

        Returns:
            str: Namespace name

        Raises:
            InfrastructureError: If no name can be evaluated
        """
        if recorded_namespace:
            return recorded_namespace

        stored = self._stored_namespace(context)
        if stored:
            self.logger.debug(f"Using namespace {stored} stored in preferences of user {context.user_id}")
            return stored

        name = self.evaluate_default(context)
        self._record(context, name)
        return name

    def evaluate_default(self, context: ResolutionContext) -> str:
        """
        Evaluate the configured template for the given identity.

        A result that is not a valid name, or that starts with a protected
        prefix, is normalized and given a random suffix. Suffixes are redrawn
        while the candidate already exists.
        """
        if not self.template:
            raise InfrastructureError("No default namespace template is configured")

        name = evaluate_placeholders(self.template, context)
        if is_valid_namespace_name(name) and not has_protected_prefix(name):
            return name

        normalized = escape_protected_prefix(normalize_namespace_name(name))
        if not normalized:
            raise InfrastructureError(
                f"Evaluation of namespace template '{self.template}' for user "
                f"{context.user_name} produced an empty name"
            )

        for _ in range(MAX_SUFFIX_ATTEMPTS):
            candidate = with_random_suffix(normalized)
            if not self.exists(candidate):
                self.logger.info(f"Evaluated namespace {candidate} from template '{self.template}'")
                return candidate

        raise InfrastructureError(
            f"Unable to find a free namespace name derived from '{normalized}' "
            f"after {MAX_SUFFIX_ATTEMPTS} attempts"
        )

    def evaluate_annotations(self, context: ResolutionContext) -> Dict[str, str]:
        """Configured namespace annotations with user placeholders substituted."""
        return {
            key: evaluate_placeholders(value, context)
            for key, value in self.config.annotations().items()
        }

    def _stored_namespace(self, context: ResolutionContext) -> Optional[str]:
        preferences = self.preference_store.find(context.user_id)
        namespace = preferences.get(NAMESPACE_PREFERENCE)
        if not namespace:
            return None
        if preferences.get(NAMESPACE_TEMPLATE_PREFERENCE) != self.template:
            self.logger.debug(f"Ignoring namespace {namespace} stored for a different template")
            return None
        return namespace

    def _record(self, context: ResolutionContext, name: str) -> None:
        try:
            preferences = self.preference_store.find(context.user_id)
            preferences[NAMESPACE_PREFERENCE] = name
            preferences[NAMESPACE_TEMPLATE_PREFERENCE] = self.template
            self.preference_store.update(context.user_id, preferences)
        except Exception as e:
            self.logger.error(f"Failed to store namespace {name} in preferences of user {context.user_id}: {e}")
