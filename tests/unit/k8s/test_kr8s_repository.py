"""Unit tests for Kr8sRepository.

The kr8s API handle and the kr8s object class methods are mocked, so these
tests check the mapping between kr8s calls and the repository contract.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import kr8s
import pytest

from monitoring_operator.k8s.errors import ConflictError
from monitoring_operator.k8s.kinds import (
    CLUSTER_ROLE,
    DEPLOYMENT,
    PROMETHEUS,
    ResourceIdentity,
)
from monitoring_operator.k8s.kr8s_repository import Kr8sRepository
from tests.fakes import TEST_NAMESPACE

Deployment = DEPLOYMENT.object_class


def server_error(status_code: int) -> kr8s.ServerError:
    return kr8s.ServerError("request failed", response=MagicMock(status_code=status_code))


def deployment(name: str = "kube-state-metrics") -> dict:
    return {"metadata": {"name": name, "namespace": TEST_NAMESPACE}}


@pytest.fixture
def mock_api() -> MagicMock:
    """Create a mock kr8s API handle."""
    api = MagicMock()
    api.namespace = TEST_NAMESPACE
    return api


@pytest.fixture
def repository(mock_api: MagicMock) -> Kr8sRepository:
    return Kr8sRepository(mock_api)


class TestGet:
    """Tests for get (a single GET through call_api)."""

    @pytest.mark.asyncio
    async def test_returns_object_in_one_call(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        response = MagicMock()
        response.json.return_value = deployment()
        mock_api.call_api.return_value.__aenter__.return_value = response
        identity = ResourceIdentity(DEPLOYMENT, "kube-state-metrics", TEST_NAMESPACE)

        result = await repository.get(identity)

        assert result == deployment()
        assert mock_api.call_api.call_count == 1
        args, kwargs = mock_api.call_api.call_args
        assert args == ("GET",)
        assert kwargs["url"] == "deployments/kube-state-metrics"
        assert kwargs["namespace"] == TEST_NAMESPACE

    @pytest.mark.asyncio
    async def test_absent_object_is_not_retried(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        """A 404 returns None after exactly one request."""
        mock_api.call_api.side_effect = server_error(404)
        identity = ResourceIdentity(DEPLOYMENT, "absent", TEST_NAMESPACE)

        assert await repository.get(identity) is None
        assert mock_api.call_api.call_count == 1

    @pytest.mark.asyncio
    async def test_missing_custom_resource_endpoint_is_not_retried(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        """A kind whose CRD is not installed yet also 404s once."""
        mock_api.call_api.side_effect = server_error(404)
        identity = ResourceIdentity(PROMETHEUS, "k8s", TEST_NAMESPACE)

        assert await repository.get(identity) is None
        assert mock_api.call_api.call_count == 1

    @pytest.mark.asyncio
    async def test_not_found_error_returns_none(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        mock_api.call_api.side_effect = kr8s.NotFoundError("absent")
        identity = ResourceIdentity(DEPLOYMENT, "absent", TEST_NAMESPACE)

        assert await repository.get(identity) is None

    @pytest.mark.asyncio
    async def test_other_errors_propagate(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        mock_api.call_api.side_effect = server_error(500)
        identity = ResourceIdentity(DEPLOYMENT, "d", TEST_NAMESPACE)

        with pytest.raises(kr8s.ServerError):
            await repository.get(identity)
        assert mock_api.call_api.call_count == 1


class TestUpdate:
    """Tests for update (PUT through call_api)."""

    @pytest.mark.asyncio
    async def test_puts_full_object(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        stored = {**deployment(), "spec": {"replicas": 2}}
        response = MagicMock()
        response.json.return_value = stored
        mock_api.call_api.return_value.__aenter__.return_value = response
        desired = deployment()
        desired["metadata"]["resourceVersion"] = "42"

        result = await repository.update(DEPLOYMENT, desired)

        assert result == stored
        args, kwargs = mock_api.call_api.call_args
        assert args == ("PUT",)
        assert kwargs["url"] == "deployments/kube-state-metrics"
        assert kwargs["namespace"] == TEST_NAMESPACE
        body = json.loads(kwargs["data"])
        assert body["metadata"]["resourceVersion"] == "42"
        assert body["kind"] == "Deployment"
        assert body["apiVersion"] == "apps/v1"

    @pytest.mark.asyncio
    async def test_conflict_maps_to_conflict_error(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        mock_api.call_api.side_effect = server_error(409)

        with pytest.raises(ConflictError):
            await repository.update(DEPLOYMENT, deployment())

    @pytest.mark.asyncio
    async def test_other_server_errors_propagate(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        mock_api.call_api.side_effect = server_error(422)

        with pytest.raises(kr8s.ServerError):
            await repository.update(DEPLOYMENT, deployment())


class TestCreate:
    """Tests for create."""

    @pytest.mark.asyncio
    async def test_creates_bound_object(self, repository: Kr8sRepository) -> None:
        with patch.object(Deployment, "create", new=AsyncMock()) as create:
            result = await repository.create(DEPLOYMENT, deployment())

        create.assert_awaited_once()
        assert result["metadata"]["name"] == "kube-state-metrics"
        assert result["kind"] == "Deployment"


class TestDelete:
    """Tests for delete."""

    @pytest.mark.asyncio
    async def test_passes_propagation_policy(self, repository: Kr8sRepository) -> None:
        identity = ResourceIdentity(DEPLOYMENT, "d", TEST_NAMESPACE)

        with patch.object(Deployment, "delete", new=AsyncMock()) as delete:
            deleted = await repository.delete(identity, propagation="Foreground")

        assert deleted
        delete.assert_awaited_once_with(propagation_policy="Foreground")

    @pytest.mark.asyncio
    async def test_missing_object_is_not_an_error(
        self, repository: Kr8sRepository
    ) -> None:
        identity = ResourceIdentity(DEPLOYMENT, "d", TEST_NAMESPACE)
        gone = AsyncMock(side_effect=kr8s.NotFoundError("d"))

        with patch.object(Deployment, "delete", new=gone):
            assert not await repository.delete(identity)

    @pytest.mark.asyncio
    async def test_404_server_error_is_not_an_error(
        self, repository: Kr8sRepository
    ) -> None:
        identity = ResourceIdentity(DEPLOYMENT, "d", TEST_NAMESPACE)

        with patch.object(Deployment, "delete", new=AsyncMock(side_effect=server_error(404))):
            assert not await repository.delete(identity)


class TestListAndWatch:
    """Tests for list and watch."""

    @pytest.mark.asyncio
    async def test_list_passes_namespace_and_selector(
        self, repository: Kr8sRepository
    ) -> None:
        captured: dict = {}

        async def fake_list(**kwargs):
            captured.update(kwargs)
            yield MagicMock(raw=deployment("a"))
            yield MagicMock(raw=deployment("b"))

        with patch.object(Deployment, "list", new=fake_list):
            result = await repository.list(
                DEPLOYMENT, TEST_NAMESPACE, label_selector="app=prometheus"
            )

        assert [obj["metadata"]["name"] for obj in result] == ["a", "b"]
        assert captured["namespace"] == TEST_NAMESPACE
        assert captured["label_selector"] == "app=prometheus"

    @pytest.mark.asyncio
    async def test_cluster_scoped_list_drops_namespace(
        self, repository: Kr8sRepository
    ) -> None:
        captured: dict = {}

        async def fake_list(**kwargs):
            captured.update(kwargs)
            return
            yield

        with patch.object(CLUSTER_ROLE.object_class, "list", new=fake_list):
            assert await repository.list(CLUSTER_ROLE, TEST_NAMESPACE) == []

        assert "namespace" not in captured

    @pytest.mark.asyncio
    async def test_watch_yields_events(
        self, repository: Kr8sRepository, mock_api: MagicMock
    ) -> None:
        async def fake_watch(kind, **kwargs):
            yield "ADDED", MagicMock(raw=deployment("a"))
            yield "DELETED", MagicMock(raw=deployment("a"))

        mock_api.watch = fake_watch

        events = [event async for event in repository.watch(DEPLOYMENT, TEST_NAMESPACE)]

        assert [event.type for event in events] == ["ADDED", "DELETED"]
        assert events[0].object["metadata"]["name"] == "a"


class TestConnect:
    """Tests for Kr8sRepository.connect."""

    @pytest.mark.asyncio
    async def test_creates_api_handle(self) -> None:
        api = MagicMock()

        with patch("kr8s.asyncio.api", new=AsyncMock(return_value=api)) as factory:
            repository = await Kr8sRepository.connect(
                kubeconfig=Path("/tmp/kubeconfig"),
                context="admin",
                namespace=TEST_NAMESPACE,
            )

        assert repository.api is api
        factory.assert_awaited_once_with(
            kubeconfig="/tmp/kubeconfig", context="admin", namespace=TEST_NAMESPACE
        )
