"""
Unit tests for the workspace RBAC bootstrapper.
"""

import pytest

from workspace_namespaces.config import NamespaceConfig
from workspace_namespaces.errors import InfrastructureError
from workspace_namespaces.k8s_client import K8sAuthorizationError, K8sConflictError, K8sServerError
from workspace_namespaces.rbac import (
    METRICS_API_PATH,
    WORKSPACE_CREDENTIALS_SECRET_NAME,
    RbacBootstrapper,
    RbacSpec,
)

NAMESPACE = "jondoe-che"
SERVICE_ACCOUNT = "workspace"

BASE_ROLE_NAMES = ["exec", "workspace-configmaps", "workspace-secrets", "workspace-view"]
BASE_BINDING_NAMES = ["workspace-configmaps", "workspace-exec", "workspace-secrets", "workspace-view"]


class TestPrepare:
    """Test RBAC reconciliation."""

    def test_base_objects_created(self, fake_client):
        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        assert fake_client.names('ServiceAccount', NAMESPACE) == [SERVICE_ACCOUNT]
        assert fake_client.names('Role', NAMESPACE) == BASE_ROLE_NAMES
        assert fake_client.names('RoleBinding', NAMESPACE) == BASE_BINDING_NAMES

    def test_binding_references_role_and_service_account(self, fake_client):
        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        binding = fake_client.object('RoleBinding', NAMESPACE, "workspace-exec")
        assert binding['roleRef'] == {
            'apiGroup': 'rbac.authorization.k8s.io', 'kind': 'Role', 'name': 'exec'
        }
        assert binding['subjects'] == [
            {'kind': 'ServiceAccount', 'name': SERVICE_ACCOUNT, 'namespace': NAMESPACE}
        ]

    def test_secrets_role_limited_to_credentials_secret(self, fake_client):
        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        role = fake_client.object('Role', NAMESPACE, "workspace-secrets")
        assert role['rules'][0]['resourceNames'] == [WORKSPACE_CREDENTIALS_SECRET_NAME]
        assert role['rules'][0]['verbs'] == ["get", "patch"]

    def test_idempotent(self, fake_client):
        fake_client.cluster_roles.add("edit")
        bootstrapper = RbacBootstrapper(fake_client)

        bootstrapper.prepare(SERVICE_ACCOUNT, NAMESPACE, ["edit"])
        roles = fake_client.names('Role', NAMESPACE)
        bindings = fake_client.names('RoleBinding', NAMESPACE)
        created = len(fake_client.called('create_role'))

        bootstrapper.prepare(SERVICE_ACCOUNT, NAMESPACE, ["edit"])

        assert fake_client.names('Role', NAMESPACE) == roles
        assert fake_client.names('RoleBinding', NAMESPACE) == bindings
        assert len(fake_client.called('create_role')) == created

    def test_existing_role_left_untouched(self, fake_client):
        fake_client.objects[('Role', NAMESPACE, "exec")] = {'metadata': {'name': "exec"}, 'rules': []}

        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        assert fake_client.object('Role', NAMESPACE, "exec")['rules'] == []
        assert ('create_role', NAMESPACE, "exec") not in fake_client.calls

    def test_concurrent_creation_tolerated(self, fake_client):
        fake_client.fail('create_role', K8sConflictError("exists", 409, "create role"))
        fake_client.fail('create_service_account', K8sConflictError("exists", 409, "create sa"))

        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        assert fake_client.names('RoleBinding', NAMESPACE) == BASE_BINDING_NAMES

    def test_metrics_role_when_supported(self, fake_client):
        fake_client.api_paths.add(METRICS_API_PATH)

        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        assert "workspace-metrics" in fake_client.names('Role', NAMESPACE)
        assert "workspace-metrics" in fake_client.names('RoleBinding', NAMESPACE)

    def test_metrics_probe_forbidden(self, fake_client):
        fake_client.fail('supports_api_path', K8sAuthorizationError("forbidden", 403))

        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        assert fake_client.names('Role', NAMESPACE) == BASE_ROLE_NAMES

    def test_metrics_role_forbidden(self, fake_client):
        fake_client.api_paths.add(METRICS_API_PATH)
        fake_client.fail('create_role', K8sAuthorizationError("forbidden", 403), name="workspace-metrics")

        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        assert fake_client.names('Role', NAMESPACE) == BASE_ROLE_NAMES
        assert fake_client.names('RoleBinding', NAMESPACE) == BASE_BINDING_NAMES

    def test_metrics_binding_forbidden(self, fake_client):
        fake_client.cluster_roles.add("edit")
        fake_client.api_paths.add(METRICS_API_PATH)
        fake_client.fail('create_role_binding', K8sAuthorizationError("forbidden", 403), name="workspace-metrics")

        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE, ["edit"])

        assert "workspace-metrics" in fake_client.names('Role', NAMESPACE)
        assert "workspace-metrics" not in fake_client.names('RoleBinding', NAMESPACE)
        assert "workspace-edit" in fake_client.names('RoleBinding', NAMESPACE)

    def test_metrics_probed_on_every_call(self, fake_client):
        bootstrapper = RbacBootstrapper(fake_client)

        bootstrapper.prepare(SERVICE_ACCOUNT, NAMESPACE)
        fake_client.api_paths.add(METRICS_API_PATH)
        bootstrapper.prepare(SERVICE_ACCOUNT, NAMESPACE)

        assert len(fake_client.called('supports_api_path')) == 2
        assert "workspace-metrics" in fake_client.names('Role', NAMESPACE)

    def test_extra_cluster_roles(self, fake_client):
        fake_client.cluster_roles.update({"admin", "edit"})

        RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE, {"admin", "edit", "missing"})

        bindings = fake_client.names('RoleBinding', NAMESPACE)
        assert "workspace-admin" in bindings
        assert "workspace-edit" in bindings
        assert "workspace-missing" not in bindings
        edit = fake_client.object('RoleBinding', NAMESPACE, "workspace-edit")
        assert edit['roleRef']['kind'] == "ClusterRole"
        assert edit['roleRef']['name'] == "edit"

    def test_cluster_role_lookup_forbidden(self, fake_client):
        fake_client.fail('get_cluster_role', K8sAuthorizationError("forbidden", 403))

        with pytest.raises(K8sAuthorizationError):
            RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE, ["edit"])

    def test_service_account_failure_is_fatal(self, fake_client):
        fake_client.fail('create_service_account', K8sServerError("boom", 500))

        with pytest.raises(InfrastructureError, match="Failed to prepare service account workspace"):
            RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)

        assert fake_client.called('create_role') == []

    def test_role_failure_propagates(self, fake_client):
        fake_client.fail('create_role_binding', K8sServerError("boom", 500))

        with pytest.raises(InfrastructureError):
            RbacBootstrapper(fake_client).prepare(SERVICE_ACCOUNT, NAMESPACE)


class TestRbacSpec:
    """Test RbacSpec construction from configuration."""

    def test_from_config(self):
        config = NamespaceConfig(
            service_account_name=" workspace ",
            workspace_sa_cluster_roles="view, edit,,view"
        )

        spec = RbacSpec.from_config(config)

        assert spec.service_account_name == "workspace"
        assert spec.extra_cluster_role_names == {"view", "edit"}
        assert spec.base_role_names == [
            "workspace-view", "exec", "workspace-secrets", "workspace-configmaps"
        ]
