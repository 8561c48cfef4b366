"""Connection settings for the monitoring operator client."""

from __future__ import annotations

import os
import re
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .constants import DEFAULT_CONSTANTS

# RFC 1123 label, the format Kubernetes requires for namespace names
_NAMESPACE_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]{0,61}[a-z0-9])?$")


class ClientSettings(BaseModel):
    """Settings needed to connect the client to a cluster.

    Attributes:
        namespace: Namespace the monitoring stack is deployed to
        app_version_name: Name of the operator's app version object
        kube_context: kubeconfig context (default: current context)
        kubeconfig: kubeconfig path (default: kr8s discovery)
    """

    model_config = ConfigDict(frozen=True)

    namespace: str = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE
    app_version_name: str = ""
    kube_context: str | None = None
    kubeconfig: Path | None = None

    @field_validator("namespace")
    @classmethod
    def _valid_namespace(cls, value: str) -> str:
        if not _NAMESPACE_PATTERN.match(value):
            raise ValueError(f"'{value}' is not a valid namespace name")
        return value

    @classmethod
    def from_env(cls) -> ClientSettings:
        """Load settings from environment variables.

        Reads MONITORING_NAMESPACE, MONITORING_APP_VERSION, KUBE_CONTEXT and
        KUBECONFIG. Unset variables fall back to the defaults.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        values: dict[str, str] = {}
        for field_name, var in (
            ("namespace", "MONITORING_NAMESPACE"),
            ("app_version_name", "MONITORING_APP_VERSION"),
            ("kube_context", "KUBE_CONTEXT"),
            ("kubeconfig", "KUBECONFIG"),
        ):
            if value := os.environ.get(var):
                values[field_name] = value

        logger.debug(f"Client settings from environment: {sorted(values)}")
        try:
            return cls(**values)
        except ValidationError as e:
            raise ValueError(f"Invalid client settings: {e}") from e
