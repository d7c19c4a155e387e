"""Pytest configuration and shared fixtures for cluster-client-core tests."""

from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Auto-cleanup: Clear environment variables that influence resolution.

    This prevents test pollution from the developer's shell (a real
    KUBECONFIG, proxies, running inside a pod).
    """
    import os

    test_prefixes = ("TEST_", "K8S_CLIENT_", "KUBERNETES_SERVICE_")
    exact = ("KUBECONFIG", "FAKE_IN_CLUSTER_CONFIG")
    proxy_vars = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "NO_PROXY")

    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in test_prefixes) or key in exact or key.upper() in proxy_vars:
            monkeypatch.delenv(key, raising=False)

    yield


@pytest.fixture
def ca_pem() -> bytes:
    return (FIXTURES_DIR / "ca.crt").read_bytes()


@pytest.fixture
def client_cert_pem() -> bytes:
    return (FIXTURES_DIR / "client.crt").read_bytes()


@pytest.fixture
def client_key_pem() -> bytes:
    return (FIXTURES_DIR / "client.key").read_bytes()
