"""Rollout health of managed Deployments."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from kubernetes.client import V1Deployment


class HealthStatus(str, Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    PROGRESSING = "progressing"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


@dataclass
class HealthCheckResult:
    """Result of a health check."""

    status: HealthStatus
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def available(self) -> bool:
        return self.status == HealthStatus.HEALTHY


class DeploymentHealthChecker:
    """
    Health checker for Kubernetes deployments.

    A deployment is healthy once the controller has observed the latest
    template, every desired replica runs that template, and the
    ``Available`` condition is True. The check is a pure function of the
    object so it can be evaluated on every reconciliation without extra
    API calls.
    """

    def check(self, deployment: Optional[V1Deployment]) -> HealthCheckResult:
        """
        Check rollout health of a deployment.

        Args:
            deployment: Deployment as read from the cluster, or None

        Returns:
            HealthCheckResult
        """
        if deployment is None:
            return HealthCheckResult(HealthStatus.UNKNOWN, "Deployment not found")

        status = deployment.status
        if status is None:
            return HealthCheckResult(HealthStatus.PROGRESSING, "Deployment has no status yet")

        desired = deployment.spec.replicas if deployment.spec.replicas is not None else 1
        generation = deployment.metadata.generation or 0
        details = {
            "generation": generation,
            "observed_generation": status.observed_generation or 0,
            "replicas": desired,
            "updated_replicas": status.updated_replicas or 0,
            "available_replicas": status.available_replicas or 0,
        }

        conditions = {c.type: c for c in (status.conditions or [])}
        progressing = conditions.get("Progressing")
        if progressing is not None and progressing.reason == "ProgressDeadlineExceeded":
            return HealthCheckResult(
                HealthStatus.UNHEALTHY,
                f"Deployment exceeded its progress deadline: {progressing.message}",
                details,
            )

        if details["observed_generation"] < generation:
            return HealthCheckResult(
                HealthStatus.PROGRESSING, "Waiting for deployment spec update to be observed", details
            )
        if details["updated_replicas"] < desired:
            return HealthCheckResult(
                HealthStatus.PROGRESSING,
                f"{details['updated_replicas']} of {desired} replicas updated",
                details,
            )

        available = conditions.get("Available")
        if available is None or available.status != "True":
            return HealthCheckResult(HealthStatus.PROGRESSING, "Waiting for deployment to be available", details)

        return HealthCheckResult(HealthStatus.HEALTHY, "Deployment is available", details)

    def is_available(self, deployment: Optional[V1Deployment]) -> bool:
        """Whether the deployment has fully rolled out and is available."""
        return self.check(deployment).available
