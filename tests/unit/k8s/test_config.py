"""Tests for ClientSettings and the connect() helper."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from monitoring_operator.config import ClientSettings
from monitoring_operator.k8s.client import MonitoringClient
from monitoring_operator.k8s.helpers import connect
from monitoring_operator.k8s.kr8s_repository import Kr8sRepository

ENV_VARS = ("MONITORING_NAMESPACE", "MONITORING_APP_VERSION", "KUBE_CONTEXT", "KUBECONFIG")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every variable ClientSettings reads."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestClientSettings:
    """Tests for ClientSettings.from_env."""

    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        settings = ClientSettings.from_env()

        assert settings.namespace == "openshift-monitoring"
        assert settings.app_version_name == ""
        assert settings.kube_context is None
        assert settings.kubeconfig is None

    def test_environment_overrides(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("MONITORING_NAMESPACE", "monitoring-test")
        clean_env.setenv("MONITORING_APP_VERSION", "cluster-monitoring")
        clean_env.setenv("KUBE_CONTEXT", "admin")
        clean_env.setenv("KUBECONFIG", "/tmp/kubeconfig")

        settings = ClientSettings.from_env()

        assert settings.namespace == "monitoring-test"
        assert settings.app_version_name == "cluster-monitoring"
        assert settings.kube_context == "admin"
        assert settings.kubeconfig == Path("/tmp/kubeconfig")

    def test_invalid_namespace_is_rejected(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("MONITORING_NAMESPACE", "Not_A_Namespace")

        with pytest.raises(ValueError, match="Invalid client settings"):
            ClientSettings.from_env()

    def test_settings_are_frozen(self) -> None:
        settings = ClientSettings()

        with pytest.raises(ValidationError):
            settings.namespace = "other"  # type: ignore[misc]


class TestConnect:
    """Tests for the connect() helper."""

    @pytest.mark.asyncio
    async def test_builds_client_from_settings(self) -> None:
        settings = ClientSettings(
            namespace="monitoring-test",
            app_version_name="cluster-monitoring",
            kube_context="admin",
        )
        repository = Kr8sRepository(MagicMock())

        with patch.object(
            Kr8sRepository, "connect", new=AsyncMock(return_value=repository)
        ) as repo_connect:
            client = await connect(settings)

        assert isinstance(client, MonitoringClient)
        assert client.repository is repository
        assert client.namespace == "monitoring-test"
        assert client.app_version_name == "cluster-monitoring"
        repo_connect.assert_awaited_once_with(
            kubeconfig=None, context="admin", namespace="monitoring-test"
        )

    @pytest.mark.asyncio
    async def test_defaults_to_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("MONITORING_NAMESPACE", "from-env")

        with patch.object(
            Kr8sRepository, "connect", new=AsyncMock(return_value=Kr8sRepository(MagicMock()))
        ):
            client = await connect()

        assert client.namespace == "from-env"
