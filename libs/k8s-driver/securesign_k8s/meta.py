"""Label and ownership helpers shared by every managed object."""

from typing import Any, Optional

from kubernetes.client import V1ObjectMeta, V1OwnerReference

PART_OF = "trusted-artifact-signer"
MANAGED_BY = "securesign-operator"


def labels_for_component(component: str, instance: str) -> dict[str, str]:
    """
    Labels identifying every object that belongs to one component instance.

    Args:
        component: Component name (e.g. "rekor")
        instance: Name of the owning resource

    Returns:
        Label dict
    """
    return {
        "app.kubernetes.io/part-of": PART_OF,
        "app.kubernetes.io/managed-by": MANAGED_BY,
        "app.kubernetes.io/component": component,
        "app.kubernetes.io/instance": instance,
    }


def labels_for(component: str, name: str, instance: str) -> dict[str, str]:
    """Component labels plus the workload name."""
    labels = labels_for_component(component, instance)
    labels["app.kubernetes.io/name"] = name
    return labels


def label_selector(labels: Optional[dict[str, Optional[str]]]) -> Optional[str]:
    """
    Build a label selector string.

    A ``None`` value selects on label existence only.

    Args:
        labels: Label selector dict

    Returns:
        Selector string or None
    """
    if not labels:
        return None
    return ",".join(k if v is None else f"{k}={v}" for k, v in labels.items())


def controller_reference(owner: dict[str, Any]) -> V1OwnerReference:
    """
    Owner reference marking ``owner`` as the managing controller of a child.

    Args:
        owner: Owner object as a dict (custom resource body)

    Returns:
        V1OwnerReference with controller and blockOwnerDeletion set
    """
    metadata = owner["metadata"]
    return V1OwnerReference(
        api_version=owner["apiVersion"],
        kind=owner["kind"],
        name=metadata["name"],
        uid=metadata.get("uid", ""),
        controller=True,
        block_owner_deletion=True,
    )


def set_controller_reference(owner: dict[str, Any], metadata: V1ObjectMeta) -> V1ObjectMeta:
    """
    Attach the controller reference to ``metadata`` so that deleting the owner
    cascades to the child.

    Raises:
        ValueError: If the child is already controlled by another object
    """
    ref = controller_reference(owner)
    refs = list(metadata.owner_references or [])
    for existing in refs:
        if existing.controller and existing.uid != ref.uid:
            raise ValueError(
                f"{metadata.name} is already controlled by {existing.kind}/{existing.name}"
            )
    metadata.owner_references = [r for r in refs if r.uid != ref.uid] + [ref]
    return metadata

