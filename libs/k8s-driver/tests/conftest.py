"""Pytest configuration and fixtures for K8s driver tests."""

import pytest
from unittest.mock import MagicMock, Mock
from kubernetes import client


@pytest.fixture
def mock_cluster_connection():
    """Mock cluster connection for testing."""
    mock_conn = MagicMock()
    mock_conn.core_v1 = MagicMock(spec=client.CoreV1Api)
    mock_conn.apps_v1 = MagicMock(spec=client.AppsV1Api)
    mock_conn.batch_v1 = MagicMock(spec=client.BatchV1Api)
    mock_conn.networking_v1 = MagicMock(spec=client.NetworkingV1Api)
    mock_conn.rbac_v1 = MagicMock(spec=client.RbacAuthorizationV1Api)
    mock_conn.custom_objects = MagicMock(spec=client.CustomObjectsApi)
    return mock_conn


@pytest.fixture
def rekor_body():
    """Custom resource body of a Rekor instance."""
    return {
        "apiVersion": "rhtas.redhat.com/v1alpha1",
        "kind": "Rekor",
        "metadata": {
            "name": "rekor-sample",
            "namespace": "default",
            "uid": "0a1b2c3d",
            "resourceVersion": "7",
            "generation": 2,
        },
        "spec": {},
    }


@pytest.fixture
def mock_k8s_deployment():
    """Mock Kubernetes Deployment object."""
    deployment = Mock(spec=client.V1Deployment)
    deployment.metadata = Mock()
    deployment.metadata.name = "rekor-server"
    deployment.metadata.namespace = "default"
    deployment.metadata.generation = 3
    deployment.metadata.labels = {"app.kubernetes.io/component": "rekor"}

    deployment.spec = Mock()
    deployment.spec.replicas = 2

    deployment.status = Mock()
    deployment.status.observed_generation = 3
    deployment.status.updated_replicas = 2
    deployment.status.available_replicas = 2
    deployment.status.conditions = [
        Mock(type="Available", status="True", reason="MinimumReplicasAvailable", message="Deployment has minimum availability"),
        Mock(type="Progressing", status="True", reason="NewReplicaSetAvailable", message="ReplicaSet has successfully progressed"),
    ]

    return deployment
