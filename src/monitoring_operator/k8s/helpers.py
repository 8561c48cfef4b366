from __future__ import annotations

from loguru import logger

from ..config import ClientSettings
from .client import MonitoringClient
from .kr8s_repository import Kr8sRepository


async def connect(settings: ClientSettings | None = None) -> MonitoringClient:
    """Connect to the cluster and build a MonitoringClient.

    The kr8s API handle is created once here and shared by everything the
    client does. Call this from the event loop that will use the client.

    Args:
        settings: Connection settings (default: loaded from the environment)

    Returns:
        A ready-to-use MonitoringClient
    """
    settings = settings or ClientSettings.from_env()
    repository = await Kr8sRepository.connect(
        kubeconfig=settings.kubeconfig,
        context=settings.kube_context,
        namespace=settings.namespace,
    )
    logger.info(f"Connected monitoring client to namespace {settings.namespace}")
    return MonitoringClient(
        repository,
        namespace=settings.namespace,
        app_version_name=settings.app_version_name,
    )
