"""
Cluster flavors.

A flavor knows how a tenant namespace is represented on a particular kind of
cluster: a plain Kubernetes ``Namespace`` or an OpenShift ``Project``. The
factory and lister hold a flavor and delegate the flavor-specific calls to it;
everything else (name resolution, RBAC, configurators) is shared.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from .k8s_client import KubernetesClient
from .models import (
    DESCRIPTION_ATTRIBUTE,
    DISPLAY_NAME_ATTRIBUTE,
    PHASE_ATTRIBUTE,
    NamespaceMeta,
)

PROJECT_DISPLAY_NAME_ANNOTATION = "openshift.io/display-name"
PROJECT_DESCRIPTION_ANNOTATION = "openshift.io/description"

CleanupAction = Callable[[str, str], None]



@runtime_checkable
class NamespaceFlavor(Protocol):
    """Flavor-specific namespace operations used by the factory, lister and access handle."""

    kind: str

    def fetch(self, name: str) -> Optional[Dict[str, Any]]:
        ...

    def create(self, name: str, labels: Dict[str, str], annotations: Dict[str, str]) -> Dict[str, Any]:
        ...

    def patch(self, name: str, labels: Dict[str, str], annotations: Dict[str, str]) -> None:
        ...

    def list(self, label_selector: Optional[str]) -> List[Dict[str, Any]]:
        ...

    def delete(self, name: str) -> bool:
        ...

    def as_meta(self, manifest: Dict[str, Any]) -> NamespaceMeta:
        ...

    def cleanup_actions(self) -> Dict[str, CleanupAction]:
        ...


def _metadata(manifest: Dict[str, Any]) -> Dict[str, Any]:
    return manifest.get('metadata') or {}


def manifest_labels(manifest: Dict[str, Any]) -> Dict[str, str]:
    return _metadata(manifest).get('labels') or {}


def manifest_annotations(manifest: Dict[str, Any]) -> Dict[str, str]:
    return _metadata(manifest).get('annotations') or {}


def _namespace_meta(manifest: Dict[str, Any]) -> NamespaceMeta:
    attributes = {}
    phase = (manifest.get('status') or {}).get('phase')
    if phase:
        attributes[PHASE_ATTRIBUTE] = phase
    return NamespaceMeta(name=_metadata(manifest).get('name'), attributes=attributes)


class KubernetesNamespaceFlavor:
    """Tenant namespaces backed by Kubernetes ``Namespace`` objects."""

    kind = "namespace"

    def __init__(self, k8s_client: KubernetesClient):
        self.client = k8s_client

    def fetch(self, name: str) -> Optional[Dict[str, Any]]:
        return self.client.get_namespace(name)

    def create(self, name: str, labels: Dict[str, str], annotations: Dict[str, str]) -> Dict[str, Any]:
        return self.client.create_namespace(name, labels=labels, annotations=annotations)

    def patch(self, name: str, labels: Dict[str, str], annotations: Dict[str, str]) -> None:
        self.client.patch_namespace(name, labels=labels, annotations=annotations)

    def list(self, label_selector: Optional[str]) -> List[Dict[str, Any]]:
        return self.client.list_namespaces(label_selector=label_selector)

    def delete(self, name: str) -> bool:
        return self.client.delete_namespace(name)

    def as_meta(self, manifest: Dict[str, Any]) -> NamespaceMeta:
        return _namespace_meta(manifest)

    def cleanup_actions(self) -> Dict[str, CleanupAction]:
        """Label-selector deletions run when a workspace is torn down, keyed by kind."""
        return {
            'deployments': self.client.delete_deployments,
            'services': self.client.delete_services,
            'ingresses': self.client.delete_ingresses,
            'secrets': self.client.delete_secrets,
            'configmaps': self.client.delete_config_maps,
        }


class OpenShiftProjectFlavor:
    """
    Tenant namespaces backed by OpenShift ``Project`` objects.

    Projects are requested through ``projectrequests``; labels and annotations
    are applied to the underlying namespace afterwards since a project request
    carries neither.
    """

    kind = "project"

    def __init__(self, k8s_client: KubernetesClient):
        self.client = k8s_client
        self.logger = logging.getLogger(__name__)

    def fetch(self, name: str) -> Optional[Dict[str, Any]]:
        return self.client.get_project(name)

    def create(self, name: str, labels: Dict[str, str], annotations: Dict[str, str]) -> Dict[str, Any]:
        project = self.client.create_project(name)
        if labels or annotations:
            self.logger.debug(f"Applying labels and annotations to project {name}")
            self.client.patch_namespace(name, labels=labels, annotations=annotations)
        return project

    def patch(self, name: str, labels: Dict[str, str], annotations: Dict[str, str]) -> None:
        self.client.patch_namespace(name, labels=labels, annotations=annotations)

    def list(self, label_selector: Optional[str]) -> List[Dict[str, Any]]:
        return self.client.list_projects(label_selector=label_selector)

    def delete(self, name: str) -> bool:
        return self.client.delete_project(name)

    def as_meta(self, manifest: Dict[str, Any]) -> NamespaceMeta:
        meta = _namespace_meta(manifest)
        annotations = manifest_annotations(manifest)
        if annotations.get(PROJECT_DISPLAY_NAME_ANNOTATION):
            meta.attributes[DISPLAY_NAME_ATTRIBUTE] = annotations[PROJECT_DISPLAY_NAME_ANNOTATION]
        if annotations.get(PROJECT_DESCRIPTION_ANNOTATION):
            meta.attributes[DESCRIPTION_ATTRIBUTE] = annotations[PROJECT_DESCRIPTION_ANNOTATION]
        return meta

    def cleanup_actions(self) -> Dict[str, CleanupAction]:
        return {
            'deployments': self.client.delete_deployments,
            'services': self.client.delete_services,
            'routes': self.client.delete_routes,
            'secrets': self.client.delete_secrets,
            'configmaps': self.client.delete_config_maps,
        }
