"""
Controller configuration.

Settings come from environment variables (or a .env file). Capability
configuration (which resource kinds to watch and how to find the workloads
behind them) is read from the CONFIG_CAPABILITIES directory.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Tuple

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings

from .errors import InvalidConfigurationError
from .schemas import ProtectedResource, RoutingTarget

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # ==========================================================================
    # Routing
    # ==========================================================================
    route_gateway_namespace: str = "opendatahub-services"
    route_gateway_service: str = "opendatahub-ingress-router"
    route_ingress_selector_key: str = "istio"
    route_ingress_selector_value: str = "opendatahub-ingress-gateway"

    # Empty means "read it from the cluster Ingress config" (OpenShift only)
    cluster_domain: str = ""

    # ==========================================================================
    # Authorization
    # ==========================================================================
    auth_audience: str = "https://kubernetes.default.svc"  # Comma-separated list
    auth_provider: str = "opendatahub-auth-provider"
    authorino_label: str = "security.opendatahub.io/authorization-group=default"

    # Directory holding the "routing" and "authorization" capability files
    config_capabilities: str = "/tmp/platform-capabilities"

    # Kubernetes access: in-cluster first, kubeconfig as fallback
    k8s_in_cluster: bool = True

    # Field manager / managed-by value stamped on derived resources
    field_manager: str = "odh-platform"

    log_level: str = "INFO"

    # ==========================================================================
    # Retry budgets
    # ==========================================================================
    # Optimistic concurrency (409 Conflict) on updates
    conflict_retry_attempts: int = 5
    conflict_retry_initial_wait: float = 0.01
    conflict_retry_max_wait: float = 1.0

    # Waiting for a workload's Services to show up
    collaborator_retry_attempts: int = 4
    collaborator_retry_initial_wait: float = 0.01
    collaborator_retry_max_wait: float = 2.0

    @property
    def audiences(self) -> List[str]:
        """Token review audiences as a list."""
        return [a.strip() for a in self.auth_audience.split(",") if a.strip()]

    @property
    def authorino_label_pair(self) -> Tuple[str, str]:
        """
        Split AUTHORINO_LABEL into its key and value.

        Raises:
            InvalidConfigurationError: If the label is not in key=value form
        """
        parts = self.authorino_label.split("=")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise InvalidConfigurationError(
                f"expected authorino label to be in key=value format, got [{self.authorino_label}]"
            )
        return parts[0], parts[1]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        case_sensitive = False


@lru_cache()
def get_settings():
    return Settings()


# =============================================================================
# Capability configuration files
# =============================================================================

ROUTING_CONFIG_FILE = "routing"
AUTHORIZATION_CONFIG_FILE = "authorization"


def _read_capability_file(directory: str, filename: str) -> list:
    """
    Read one capability file as a list of entries.

    The files are JSON; YAML is accepted as well. A missing file means the
    capability is not configured.
    """
    path = Path(directory) / filename
    if not path.is_file():
        logger.info(f"[CONFIG] No {filename} capability config at {path}, skipping")
        return []

    content = path.read_text(encoding="utf-8")
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise InvalidConfigurationError(f"could not parse {path}: {e}") from e

    if data is None:
        return []
    if not isinstance(data, list):
        raise InvalidConfigurationError(
            f"expected a list of entries in {path}, got {type(data).__name__}"
        )
    return data


def load_routing_targets(settings: Settings) -> List[RoutingTarget]:
    """
    Load the routing capability targets.

    Args:
        settings: Controller settings (for the config directory)

    Returns:
        List of configured routing targets (empty if none)
    """
    entries = _read_capability_file(settings.config_capabilities, ROUTING_CONFIG_FILE)
    try:
        return [RoutingTarget.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise InvalidConfigurationError(f"invalid routing capability config: {e}") from e


def load_protected_resources(settings: Settings) -> List[ProtectedResource]:
    """
    Load the authorization capability targets.

    Args:
        settings: Controller settings (for the config directory)

    Returns:
        List of configured protected resources (empty if none)
    """
    entries = _read_capability_file(settings.config_capabilities, AUTHORIZATION_CONFIG_FILE)
    try:
        return [ProtectedResource.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise InvalidConfigurationError(f"invalid authorization capability config: {e}") from e
