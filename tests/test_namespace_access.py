"""
Unit tests for NamespaceAccess.
"""

import pytest

from workspace_namespaces.errors import InfrastructureError
from workspace_namespaces.flavors import KubernetesNamespaceFlavor, OpenShiftProjectFlavor
from workspace_namespaces.k8s_client import (
    K8sAuthorizationError,
    K8sConflictError,
    K8sServerError,
)
from workspace_namespaces.namespace_access import NamespaceAccess

NAMESPACE = "jondoe-che"
WORKSPACE_ID = "workspace123"


def make_access(client, openshift=False):
    flavor = OpenShiftProjectFlavor(client) if openshift else KubernetesNamespaceFlavor(client)
    return NamespaceAccess(NAMESPACE, WORKSPACE_ID, flavor, client)


class TestPrepare:
    """Test namespace preparation."""

    def test_existing_namespace(self, fake_client):
        fake_client.add_namespace(NAMESPACE)

        assert make_access(fake_client).prepare(True) is False
        assert fake_client.called('create_namespace') == []

    def test_creates_with_labels_and_annotations(self, fake_client):
        created = make_access(fake_client).prepare(True, {"a": "b"}, {"c": "d"})

        assert created is True
        metadata = fake_client.namespaces[NAMESPACE]['metadata']
        assert metadata['labels'] == {"a": "b"}
        assert metadata['annotations'] == {"c": "d"}

    def test_creation_not_allowed(self, fake_client):
        with pytest.raises(InfrastructureError, match="creation is not allowed"):
            make_access(fake_client).prepare(False)

        assert NAMESPACE not in fake_client.namespaces

    def test_forbidden_read_treated_as_missing(self, fake_client):
        fake_client.fail('get_namespace', K8sAuthorizationError("forbidden", 403))

        assert make_access(fake_client).prepare(True) is True

    def test_concurrent_creation(self, fake_client):
        fake_client.fail('create_namespace', K8sConflictError("exists", 409, "create namespace"))

        assert make_access(fake_client).prepare(True) is False

    def test_create_failure_propagates(self, fake_client):
        fake_client.fail('create_namespace', K8sServerError("boom", 500))

        with pytest.raises(InfrastructureError):
            make_access(fake_client).prepare(True)

    def test_openshift_project_labeled_after_request(self, fake_client):
        make_access(fake_client, openshift=True).prepare(True, {"a": "b"}, {})

        assert fake_client.called('create_project') == [('create_project', NAMESPACE)]
        assert fake_client.namespaces[NAMESPACE]['metadata']['labels'] == {"a": "b"}


class TestReads:
    """Test secret and config map reads."""

    def test_get_secret(self, fake_client):
        fake_client.create_secret(NAMESPACE, "creds", string_data={"token": "x"})

        assert make_access(fake_client).get_secret("creds")['metadata']['name'] == "creds"
        assert make_access(fake_client).get_secret("missing") is None

    def test_get_config_map(self, fake_client):
        fake_client.create_config_map(NAMESPACE, "prefs", data={"k": "v"})

        assert make_access(fake_client).get_config_map("prefs")['data'] == {"k": "v"}


class TestCleanup:
    """Test workspace object cleanup."""

    def test_every_kind_deleted_by_workspace_label(self, fake_client):
        make_access(fake_client).cleanup()

        selector = f"che.workspace_id={WORKSPACE_ID}"
        for method in ('delete_deployments', 'delete_services', 'delete_ingresses',
                       'delete_secrets', 'delete_config_maps'):
            assert fake_client.called(method) == [(method, NAMESPACE, selector)]
        assert fake_client.called('delete_routes') == []

    def test_openshift_deletes_routes(self, fake_client):
        make_access(fake_client, openshift=True).cleanup()

        assert len(fake_client.called('delete_routes')) == 1
        assert fake_client.called('delete_ingresses') == []

    def test_failures_aggregated(self, fake_client):
        fake_client.fail('delete_services', K8sServerError("services down", 500))
        fake_client.fail('delete_secrets', K8sServerError("secrets down", 500))

        with pytest.raises(InfrastructureError) as exc_info:
            make_access(fake_client).cleanup()

        message = str(exc_info.value)
        assert message.startswith(f"Error(s) occurred while cleaning up namespace {NAMESPACE}: ")
        assert "services: services down" in message
        assert "secrets: secrets down" in message
        assert message.index("services:") < message.index("secrets:")
        # The other kinds were still attempted
        assert len(fake_client.called('delete_deployments')) == 1
        assert len(fake_client.called('delete_config_maps')) == 1


class TestDelete:
    """Test namespace deletion."""

    def test_delete(self, fake_client):
        fake_client.add_namespace(NAMESPACE)

        make_access(fake_client).delete()

        assert NAMESPACE not in fake_client.namespaces

    def test_delete_missing(self, fake_client):
        make_access(fake_client).delete()

        assert fake_client.called('delete_namespace') == [('delete_namespace', NAMESPACE)]
