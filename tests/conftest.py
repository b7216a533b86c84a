"""
Pytest configuration and fixtures for workspace namespace tests.
"""

import base64
import copy
import os
import sys
from typing import Any, Dict, List, Optional, Set, Tuple
from unittest.mock import patch

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from workspace_namespaces.config import NamespaceConfig
from workspace_namespaces.k8s_client import K8sConflictError
from workspace_namespaces.models import InMemoryPreferenceStore, ResolutionContext


def _parse_selector(label_selector: Optional[str]) -> Dict[str, str]:
    if not label_selector:
        return {}
    return dict(part.split('=', 1) for part in label_selector.split(',') if part)


class FakeKubernetesClient:
    """
    In-memory stand-in for KubernetesClient.

    Namespaces and namespaced objects are kept in dictionaries; any method can
    be made to raise with ``fail(method_name, error)``, optionally only for
    calls naming a given object.
    """

    def __init__(self):
        self.namespaces: Dict[str, Dict[str, Any]] = {}
        self.objects: Dict[Tuple[str, str, str], Dict[str, Any]] = {}
        self.cluster_roles: Set[str] = set()
        self.api_paths: Set[str] = set()
        self.failures: Dict[str, Tuple[Exception, Optional[str]]] = {}
        self.calls: List[Tuple[Any, ...]] = []

    # Test helpers

    def fail(self, method: str, error: Exception, name: Optional[str] = None) -> None:
        self.failures[method] = (error, name)

    def add_namespace(self, name: str, labels: Optional[Dict[str, str]] = None,
                      annotations: Optional[Dict[str, str]] = None, phase: str = "Active") -> None:
        self.namespaces[name] = {
            'apiVersion': 'v1',
            'kind': 'Namespace',
            'metadata': {
                'name': name,
                'labels': dict(labels or {}),
                'annotations': dict(annotations or {})
            },
            'status': {'phase': phase}
        }

    def names(self, kind: str, namespace: str) -> List[str]:
        return sorted(name for (k, ns, name) in self.objects if k == kind and ns == namespace)

    def object(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return self.objects.get((kind, namespace, name))

    def called(self, method: str) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == method]

    def _call(self, method: str, *args) -> None:
        self.calls.append((method,) + args)
        if method in self.failures:
            error, name = self.failures[method]
            if name is None or name in args:
                raise error

    def _get(self, kind: str, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        found = self.objects.get((kind, namespace, name))
        return copy.deepcopy(found) if found is not None else None

    def _create(self, kind: str, namespace: str, name: str, manifest: Dict[str, Any]) -> Dict[str, Any]:
        if (kind, namespace, name) in self.objects:
            raise K8sConflictError(f"{kind} {name} already exists", 409, f"create {kind}")
        self.objects[(kind, namespace, name)] = manifest
        return copy.deepcopy(manifest)

    @staticmethod
    def _meta(name, labels=None, annotations=None) -> Dict[str, Any]:
        return {'name': name, 'labels': dict(labels or {}), 'annotations': dict(annotations or {})}

    # Namespaces

    def get_namespace(self, name):
        self._call('get_namespace', name)
        found = self.namespaces.get(name)
        return copy.deepcopy(found) if found is not None else None

    def create_namespace(self, name, labels=None, annotations=None):
        self._call('create_namespace', name, labels, annotations)
        if name in self.namespaces:
            raise K8sConflictError(f"namespace {name} already exists", 409, "create namespace")
        self.add_namespace(name, labels, annotations)
        return copy.deepcopy(self.namespaces[name])

    def patch_namespace(self, name, labels=None, annotations=None):
        self._call('patch_namespace', name, labels, annotations)
        metadata = self.namespaces[name]['metadata']
        metadata['labels'].update(labels or {})
        metadata['annotations'].update(annotations or {})
        return copy.deepcopy(self.namespaces[name])

    def list_namespaces(self, label_selector=None):
        self._call('list_namespaces', label_selector)
        selector = _parse_selector(label_selector)
        return [
            copy.deepcopy(ns) for ns in self.namespaces.values()
            if all(ns['metadata']['labels'].get(k) == v for k, v in selector.items())
        ]

    def delete_namespace(self, name):
        self._call('delete_namespace', name)
        return self.namespaces.pop(name, None) is not None

    # OpenShift projects share the namespace store

    def get_project(self, name):
        self._call('get_project', name)
        found = self.namespaces.get(name)
        if found is None:
            return None
        project = copy.deepcopy(found)
        project['kind'] = 'Project'
        return project

    def create_project(self, name, display_name=None, description=None):
        self._call('create_project', name)
        if name in self.namespaces:
            raise K8sConflictError(f"project {name} already exists", 409, "create project")
        self.add_namespace(name)
        return self.get_project(name)

    def list_projects(self, label_selector=None):
        self._call('list_projects', label_selector)
        projects = self.list_namespaces(label_selector)
        for project in projects:
            project['kind'] = 'Project'
        return projects

    def delete_project(self, name):
        self._call('delete_project', name)
        return self.namespaces.pop(name, None) is not None

    # Service accounts and RBAC

    def get_service_account(self, namespace, name):
        self._call('get_service_account', namespace, name)
        return self._get('ServiceAccount', namespace, name)

    def create_service_account(self, namespace, name, labels=None):
        self._call('create_service_account', namespace, name)
        return self._create('ServiceAccount', namespace, name, {'metadata': self._meta(name, labels)})

    def get_role(self, namespace, name):
        self._call('get_role', namespace, name)
        return self._get('Role', namespace, name)

    def create_role(self, namespace, name, rules, labels=None):
        self._call('create_role', namespace, name)
        return self._create('Role', namespace, name, {
            'metadata': self._meta(name, labels), 'rules': copy.deepcopy(rules)
        })

    def get_role_binding(self, namespace, name):
        self._call('get_role_binding', namespace, name)
        return self._get('RoleBinding', namespace, name)

    def create_role_binding(self, namespace, name, role_kind, role_name, subjects, labels=None):
        self._call('create_role_binding', namespace, name)
        return self._create('RoleBinding', namespace, name, {
            'metadata': self._meta(name, labels),
            'roleRef': {'apiGroup': 'rbac.authorization.k8s.io', 'kind': role_kind, 'name': role_name},
            'subjects': copy.deepcopy(subjects)
        })

    def get_cluster_role(self, name):
        self._call('get_cluster_role', name)
        return {'metadata': {'name': name}} if name in self.cluster_roles else None

    def supports_api_path(self, path):
        self._call('supports_api_path', path)
        return path in self.api_paths

    # Secrets and config maps

    def _secret(self, name, string_data, secret_type, labels, annotations):
        data = {
            key: base64.b64encode(value.encode('utf-8')).decode('ascii')
            for key, value in (string_data or {}).items()
        }
        return {'metadata': self._meta(name, labels, annotations), 'type': secret_type, 'data': data}

    def get_secret(self, namespace, name):
        self._call('get_secret', namespace, name)
        return self._get('Secret', namespace, name)

    def create_secret(self, namespace, name, string_data=None, secret_type="Opaque",
                      labels=None, annotations=None):
        self._call('create_secret', namespace, name)
        return self._create('Secret', namespace, name,
                            self._secret(name, string_data, secret_type, labels, annotations))

    def replace_secret(self, namespace, name, string_data=None, secret_type="Opaque",
                       labels=None, annotations=None):
        self._call('replace_secret', namespace, name)
        self.objects[('Secret', namespace, name)] = self._secret(
            name, string_data, secret_type, labels, annotations
        )
        return self._get('Secret', namespace, name)

    def get_config_map(self, namespace, name):
        self._call('get_config_map', namespace, name)
        return self._get('ConfigMap', namespace, name)

    def create_config_map(self, namespace, name, data=None, labels=None, annotations=None):
        self._call('create_config_map', namespace, name)
        return self._create('ConfigMap', namespace, name, {
            'metadata': self._meta(name, labels, annotations), 'data': dict(data or {})
        })

    # Cleanup

    def delete_deployments(self, namespace, label_selector):
        self._call('delete_deployments', namespace, label_selector)

    def delete_services(self, namespace, label_selector):
        self._call('delete_services', namespace, label_selector)

    def delete_ingresses(self, namespace, label_selector):
        self._call('delete_ingresses', namespace, label_selector)

    def delete_routes(self, namespace, label_selector):
        self._call('delete_routes', namespace, label_selector)

    def delete_secrets(self, namespace, label_selector):
        self._call('delete_secrets', namespace, label_selector)

    def delete_config_maps(self, namespace, label_selector):
        self._call('delete_config_maps', namespace, label_selector)


@pytest.fixture
def fake_client():
    """Empty in-memory cluster."""
    return FakeKubernetesClient()


@pytest.fixture
def namespace_config():
    """Default namespace configuration."""
    return NamespaceConfig()


@pytest.fixture
def preference_store():
    return InMemoryPreferenceStore()


@pytest.fixture
def context():
    """Resolution context for user jondoe."""
    return ResolutionContext(user_id='user123', user_name='jondoe')


@pytest.fixture
def sample_headers():
    """Sample OAuth proxy headers for testing."""
    return {
        'X-Forwarded-User': 'user123',
        'X-Forwarded-Preferred-Username': 'jondoe',
        'X-Forwarded-Email': 'jondoe@example.com',
        'X-Forwarded-Groups': 'developers,users',
        'Authorization': 'Bearer test-token-123'
    }


@pytest.fixture
def minimal_headers():
    """Minimal required headers for testing."""
    return {
        'X-Forwarded-User': 'user123'
    }


@pytest.fixture
def environment_vars():
    """Development environment variables."""
    env_vars = {
        'DEV_MODE': 'true',
        'DEV_USER': 'dev-id',
        'DEV_PREFERRED_USERNAME': 'devuser',
        'DEV_GROUPS': 'dev,user',
        'DEV_TOKEN': 'dev-token'
    }

    with patch.dict(os.environ, env_vars):
        yield env_vars
