import pytest

from monitoring_operator.constants import PollSettings, PollTimings
from monitoring_operator.k8s import client as client_module
from monitoring_operator.k8s.client import MonitoringClient
from tests.fakes import TEST_NAMESPACE, FakeRepository

# Millisecond polling so wait tests finish quickly
FAST = PollSettings(interval=0.01, timeout=0.5)


@pytest.fixture
def repository() -> FakeRepository:
    """Fresh in-memory repository."""
    return FakeRepository()


@pytest.fixture
def fast_polls(monkeypatch: pytest.MonkeyPatch) -> PollTimings:
    """Replace the client's poll timings with millisecond ones."""
    timings = PollTimings(
        deployment_rollout=FAST,
        daemon_set_rollout=FAST,
        crd_established=FAST,
        route_admitted=FAST,
        replicas_ready=FAST,
        pods_removed=FAST,
        operator_crds_ready=FAST,
    )
    monkeypatch.setattr(client_module, "POLL_TIMINGS", timings)
    return timings


@pytest.fixture
def client(repository: FakeRepository, fast_polls: PollTimings) -> MonitoringClient:
    """MonitoringClient over the fake repository with fast polling."""
    return MonitoringClient(repository, namespace=TEST_NAMESPACE)
