"""
StatefulSet builder - synthesizes the desired MongoDB StatefulSet.

Turns StatefulSetParameters into a complete apps/v1 StatefulSet manifest in
Kubernetes JSON form. The builder is a pure function of its input: it never
talks to the cluster, and the same parameters always produce the same
manifest, which keeps patch calculation stable across reconcile cycles.
"""
import copy
from typing import Any, Dict, List, Optional

from mongodb_operator.config.logging import get_logger
from mongodb_operator.config.settings import settings
from mongodb_operator.core.defaults import apply_defaults, is_fully_defaulted
from mongodb_operator.exceptions import InconsistentStateError, ValidationError
from mongodb_operator.models.statefulset import (
    ContainerParameters,
    PVCParameters,
    StatefulSetParameters,
)
from mongodb_operator.utils.quantity import canonical_quantity

logger = get_logger(__name__)

EXTERNAL_CONFIG_VOLUME = "external-config"


def validate_identity(params: StatefulSetParameters) -> None:
    """
    Ensure the StatefulSet can be addressed in the cluster.

    Raises:
        ValidationError: If name or namespace is empty
    """
    if not params.metadata.name or not params.namespace:
        raise ValidationError(
            "StatefulSet name or namespace is empty",
            details={"name": params.metadata.name, "namespace": params.namespace},
        )


def generate_meta_information(kind: str, api_version: str) -> Dict[str, str]:
    """Return the type meta of a Kubernetes object."""
    return {"apiVersion": api_version, "kind": kind}


def label_selectors(labels: Dict[str, str]) -> Dict[str, Any]:
    """Build a selector matching exactly the given labels."""
    return {"matchLabels": dict(sorted(labels.items()))}


def generate_container_def(
    name: str,
    params: ContainerParameters,
    persistence_volume: Optional[str] = None,
    external_config: bool = False,
) -> List[Dict[str, Any]]:
    """
    Build the container list of the pod template.

    Args:
        name: Container name
        params: Defaulted container parameters
        persistence_volume: Volume claim template to mount as the data directory
        external_config: Mount the external configuration volume

    Returns:
        List with the single MongoDB container

    Raises:
        ValidationError: If a resource request or limit is not a valid quantity
    """
    container: Dict[str, Any] = {
        "name": name,
        "image": params.image,
        "imagePullPolicy": params.image_pull_policy,
        "ports": [{"name": "mongo", "containerPort": params.port, "protocol": "TCP"}],
    }
    if params.command:
        container["command"] = list(params.command)
    if params.args:
        container["args"] = list(params.args)
    if params.env:
        container["env"] = [
            {"name": key, "value": value} for key, value in sorted(params.env.items())
        ]
    resources = {
        kind: {resource: canonical_quantity(amount) for resource, amount in values.items()}
        for kind, values in (params.resources or {}).items()
        if values
    }
    if resources:
        container["resources"] = resources

    volume_mounts: List[Dict[str, Any]] = []
    if persistence_volume:
        volume_mounts.append({"name": persistence_volume, "mountPath": settings.data_mount_path})
    if external_config:
        volume_mounts.append(
            {"name": EXTERNAL_CONFIG_VOLUME, "mountPath": settings.external_config_mount_path}
        )
    volume_mounts.extend(copy.deepcopy(params.extra_volume_mounts or []))
    if volume_mounts:
        container["volumeMounts"] = volume_mounts

    return [container]


def generate_persistent_volume_template(params: PVCParameters) -> Dict[str, Any]:
    """
    Build a volume claim template from PVC parameters.

    Raises:
        ValidationError: If the storage size is not a valid quantity
    """
    metadata: Dict[str, Any] = {"name": params.name}
    if params.labels:
        metadata["labels"] = dict(params.labels)
    if params.annotations:
        metadata["annotations"] = dict(params.annotations)

    spec: Dict[str, Any] = {
        "accessModes": list(params.access_modes),
        "resources": {"requests": {"storage": canonical_quantity(params.storage_size)}},
    }
    if params.storage_class_name:
        spec["storageClassName"] = params.storage_class_name

    template = generate_meta_information("PersistentVolumeClaim", "v1")
    template.update({"metadata": metadata, "spec": spec})
    return template


def get_additional_config(config_name: str) -> Dict[str, Any]:
    """Return the volume sourcing the external MongoDB configuration."""
    return {
        "name": EXTERNAL_CONFIG_VOLUME,
        "configMap": {"name": config_name},
    }


def add_owner_ref_to_object(obj: Dict[str, Any], owner: Dict[str, Any]) -> None:
    """Append an owner reference to the object's metadata."""
    obj["metadata"].setdefault("ownerReferences", []).append(owner)


def generate_statefulset_def(params: StatefulSetParameters) -> Dict[str, Any]:
    """
    Default and synthesize the desired StatefulSet.

    Args:
        params: Reconciliation parameters, defaults are applied first

    Returns:
        StatefulSet manifest as a dict

    Raises:
        ValidationError: If name or namespace is empty, or a quantity is invalid
    """
    validate_identity(params)
    return synthesize_statefulset(apply_defaults(params))


def synthesize_statefulset(params: StatefulSetParameters) -> Dict[str, Any]:
    """
    Synthesize the desired StatefulSet from already defaulted parameters.

    Args:
        params: Output of ``apply_defaults``

    Returns:
        StatefulSet manifest as a dict

    Raises:
        ValidationError: If name or namespace is empty, or a quantity is invalid
        InconsistentStateError: If the parameters were not defaulted
    """
    validate_identity(params)
    if not is_fully_defaulted(params):
        raise InconsistentStateError(
            "StatefulSet parameters must be defaulted before synthesis",
            details={"name": params.metadata.name, "namespace": params.namespace},
        )
    name = params.metadata.name

    logger.info("generating_statefulset", name=name, namespace=params.namespace)

    persistence_volume = None
    if params.container.persistence_enabled and params.pvc.storage_size:
        persistence_volume = params.pvc.name

    pod_spec: Dict[str, Any] = {
        "containers": generate_container_def(
            name,
            params.container,
            persistence_volume=persistence_volume,
            external_config=params.additional_config is not None,
        ),
        "securityContext": copy.deepcopy(params.security_context),
    }
    if params.node_selector:
        pod_spec["nodeSelector"] = dict(sorted(params.node_selector.items()))
    if params.affinity:
        pod_spec["affinity"] = copy.deepcopy(params.affinity)
    if params.tolerations:
        pod_spec["tolerations"] = copy.deepcopy(params.tolerations)
    if params.priority_class_name:
        pod_spec["priorityClassName"] = params.priority_class_name

    volumes = copy.deepcopy(params.extra_volumes)
    if params.additional_config is not None:
        volumes.append(get_additional_config(params.additional_config))
    if volumes:
        pod_spec["volumes"] = volumes

    if params.image_pull_secret is not None:
        pod_spec["imagePullSecrets"] = [{"name": params.image_pull_secret}]

    template_metadata: Dict[str, Any] = {"labels": dict(sorted(params.labels.items()))}
    if params.annotations:
        template_metadata["annotations"] = dict(sorted(params.annotations.items()))

    metadata: Dict[str, Any] = {"name": name, "namespace": params.namespace}
    if params.metadata.labels:
        metadata["labels"] = dict(sorted(params.metadata.labels.items()))
    if params.metadata.annotations:
        metadata["annotations"] = dict(sorted(params.metadata.annotations.items()))

    statefulset = generate_meta_information("StatefulSet", "apps/v1")
    statefulset.update({
        "metadata": metadata,
        "spec": {
            "selector": label_selectors(params.labels),
            "serviceName": name,
            "replicas": params.replicas,
            "template": {
                "metadata": template_metadata,
                "spec": pod_spec,
            },
        },
    })

    if persistence_volume:
        statefulset["spec"]["volumeClaimTemplates"] = [
            generate_persistent_volume_template(params.pvc)
        ]

    if params.owner is not None:
        add_owner_ref_to_object(statefulset, params.owner.to_manifest())

    return statefulset
