"""Tests for the Kubernetes object store."""

from __future__ import annotations

import base64
from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from vault_sync_operator.constants import KIND_DEPLOYMENT, KIND_SECRET
from vault_sync_operator.models import TargetRef
from vault_sync_operator.services.kubernetes.store import KubernetesObjectStore
from vault_sync_operator.utils.errors import SecretNotFoundError


def make_deployment(finalizers=None, deletion_timestamp=None) -> client.V1Deployment:
    return client.V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=client.V1ObjectMeta(
            name="app",
            namespace="default",
            uid="uid-1",
            annotations={"vault-sync.io/path": "secret/data/app"},
            finalizers=finalizers,
            deletion_timestamp=deletion_timestamp,
        ),
        spec=client.V1DeploymentSpec(
            selector=client.V1LabelSelector(match_labels={"app": "app"}),
            template=client.V1PodTemplateSpec(
                spec=client.V1PodSpec(
                    containers=[
                        client.V1Container(
                            name="app",
                            env_from=[client.V1EnvFromSource(secret_ref=client.V1SecretEnvSource(name="db"))],
                        )
                    ]
                )
            ),
        ),
    )


def make_secret(data: dict[str, str], resource_version: str = "42") -> client.V1Secret:
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(name="db", namespace="default", uid="uid-2", resource_version=resource_version),
        data={key: base64.b64encode(value.encode()).decode() for key, value in data.items()},
    )


@pytest.fixture
def apis():
    return MagicMock(), MagicMock()


class TestGetTarget:
    """Test cases for get_target."""

    def test_deployment(self, apis):
        """Test converting a deployment into a sync target."""
        apps_api, core_api = apis
        apps_api.read_namespaced_deployment.return_value = make_deployment(finalizers=["other"])
        store = KubernetesObjectStore(apps_api, core_api)

        target = store.get_target(TargetRef(KIND_DEPLOYMENT, "default", "app"))

        apps_api.read_namespaced_deployment.assert_called_once_with("app", "default")
        assert target.annotations == {"vault-sync.io/path": "secret/data/app"}
        assert target.finalizers == ["other"]
        assert not target.being_deleted
        assert target.uid == "uid-1"
        assert target.pod_spec["containers"][0]["envFrom"] == [{"secretRef": {"name": "db"}}]

    def test_secret_target(self, apis):
        """Test that secret targets carry their decoded data."""
        apps_api, core_api = apis
        core_api.read_namespaced_secret.return_value = make_secret({"user": "admin"})
        store = KubernetesObjectStore(apps_api, core_api)

        target = store.get_target(TargetRef(KIND_SECRET, "default", "db"))

        assert target.secret_data == {"user": b"admin"}
        assert target.pod_spec is None

    def test_missing_target(self, apis):
        """Test that a deleted object yields None."""
        apps_api, core_api = apis
        apps_api.read_namespaced_stateful_set.side_effect = ApiException(status=404)
        store = KubernetesObjectStore(apps_api, core_api)

        assert store.get_target(TargetRef("StatefulSet", "default", "gone")) is None

    def test_other_api_errors_propagate(self, apis):
        """Test that non-404 failures are raised."""
        apps_api, core_api = apis
        apps_api.read_namespaced_daemon_set.side_effect = ApiException(status=500)
        store = KubernetesObjectStore(apps_api, core_api)

        with pytest.raises(ApiException):
            store.get_target(TargetRef("DaemonSet", "default", "agent"))

    def test_unsupported_kind(self, apis):
        """Test that unknown kinds are rejected."""
        with pytest.raises(ValueError):
            KubernetesObjectStore(*apis).get_target(TargetRef("Job", "default", "x"))


class TestUpdateTarget:
    """Test cases for update_target."""

    def test_replace_with_annotations_and_finalizers(self, apis):
        """Test that updates replace the object read earlier."""
        apps_api, core_api = apis
        apps_api.read_namespaced_deployment.return_value = make_deployment()
        replaced = make_deployment(finalizers=["vault-sync.io/finalizer"])
        apps_api.replace_namespaced_deployment.return_value = replaced
        store = KubernetesObjectStore(apps_api, core_api)
        target = store.get_target(TargetRef(KIND_DEPLOYMENT, "default", "app"))

        target.finalizers.append("vault-sync.io/finalizer")
        target.annotations["vault-sync.io/secret-versions"] = '{"db":"1"}'
        store.update_target(target)

        name, namespace, body = apps_api.replace_namespaced_deployment.call_args[0]
        assert (name, namespace) == ("app", "default")
        assert body.metadata.finalizers == ["vault-sync.io/finalizer"]
        assert body.metadata.annotations["vault-sync.io/secret-versions"] == '{"db":"1"}'
        assert target.raw is replaced

    def test_conflict_propagates(self, apis):
        """Test that a concurrent modification surfaces as an error."""
        apps_api, core_api = apis
        core_api.read_namespaced_secret.return_value = make_secret({"a": "1"})
        core_api.replace_namespaced_secret.side_effect = ApiException(status=409)
        store = KubernetesObjectStore(apps_api, core_api)
        target = store.get_target(TargetRef(KIND_SECRET, "default", "db"))

        with pytest.raises(ApiException):
            store.update_target(target)


class TestGetSecret:
    """Test cases for get_secret."""

    def test_secret_with_version(self, apis):
        """Test that the resourceVersion is the version token."""
        apps_api, core_api = apis
        core_api.read_namespaced_secret.return_value = make_secret({"user": "u", "pass": "p"}, resource_version="9")

        secret = KubernetesObjectStore(apps_api, core_api).get_secret("default", "db")

        assert secret.version == "9"
        assert secret.data == {"user": b"u", "pass": b"p"}
        assert secret.keys() == ["pass", "user"]

    def test_not_found(self, apis):
        """Test that a missing secret is a reference error."""
        apps_api, core_api = apis
        core_api.read_namespaced_secret.side_effect = ApiException(status=404)

        with pytest.raises(SecretNotFoundError):
            KubernetesObjectStore(apps_api, core_api).get_secret("default", "db")
