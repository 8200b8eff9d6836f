"""
Default-filling for StatefulSet parameters.

Every optional field of StatefulSetParameters is replaced with an explicit
value so that synthesis never has to branch on "unset". The function works on
a deep copy: the caller's parameters are left exactly as they were passed in.

Applying the defaults twice yields the same result as applying them once.
"""
from typing import Any, Optional

from mongodb_operator.config.logging import get_logger
from mongodb_operator.config.settings import settings
from mongodb_operator.models.statefulset import StatefulSetParameters

logger = get_logger(__name__)

DEFAULT_IMAGE_PULL_POLICY = "IfNotPresent"
DEFAULT_ACCESS_MODES = ["ReadWriteOnce"]


def apply_defaults(
    params: StatefulSetParameters,
    log: Optional[Any] = None,
) -> StatefulSetParameters:
    """
    Return a fully defaulted copy of ``params``.

    Args:
        params: Parameters as supplied by the caller
        log: Logger for diagnostic events (defaults to the module logger)

    Returns:
        New StatefulSetParameters with no optional field left as None
    """
    log = log if log is not None else logger
    defaulted = params.model_copy(deep=True)

    if defaulted.replicas is None:
        log.info("replicas_defaulted", replicas=settings.default_replicas)
        defaulted.replicas = settings.default_replicas

    # Only the size is defaulted; labels, access modes and storage class the
    # caller supplied are kept.
    if not defaulted.pvc.storage_size:
        log.error(
            "pvc_storage_size_missing",
            default_size=settings.default_storage_size,
        )
        defaulted.pvc.storage_size = settings.default_storage_size

    if not defaulted.pvc.access_modes:
        log.info("pvc_access_modes_defaulted", access_modes=DEFAULT_ACCESS_MODES)
        defaulted.pvc.access_modes = list(DEFAULT_ACCESS_MODES)

    if defaulted.security_context is None:
        log.info("security_context_defaulted")
        defaulted.security_context = {}

    if defaulted.affinity is None:
        log.info("affinity_defaulted")
        defaulted.affinity = {}

    if defaulted.tolerations is None:
        log.info("tolerations_defaulted")
        defaulted.tolerations = []

    if defaulted.extra_volumes is None:
        log.info("extra_volumes_defaulted")
        defaulted.extra_volumes = []

    if defaulted.priority_class_name is None:
        defaulted.priority_class_name = ""

    for field in ("labels", "annotations", "node_selector"):
        if getattr(defaulted, field) is None:
            log.info("map_defaulted", field=field)
            setattr(defaulted, field, {})

    for field in ("labels", "annotations"):
        if getattr(defaulted.pvc, field) is None:
            log.info("map_defaulted", field=f"pvc.{field}")
            setattr(defaulted.pvc, field, {})
        if getattr(defaulted.metadata, field) is None:
            log.info("map_defaulted", field=f"metadata.{field}")
            setattr(defaulted.metadata, field, {})

    container = defaulted.container
    if container.image_pull_policy is None:
        container.image_pull_policy = DEFAULT_IMAGE_PULL_POLICY
    if container.persistence_enabled is None:
        container.persistence_enabled = False
    if container.resources is None:
        container.resources = {}
    if container.env is None:
        container.env = {}
    if container.command is None:
        container.command = []
    if container.args is None:
        container.args = []
    if container.extra_volume_mounts is None:
        container.extra_volume_mounts = []

    return defaulted


def is_fully_defaulted(params: StatefulSetParameters) -> bool:
    """Check that no defaultable field of ``params`` is still None."""
    required = [
        params.replicas,
        params.security_context,
        params.affinity,
        params.tolerations,
        params.extra_volumes,
        params.priority_class_name,
        params.labels,
        params.annotations,
        params.node_selector,
        params.metadata.labels,
        params.metadata.annotations,
        params.pvc.labels,
        params.pvc.annotations,
        params.pvc.access_modes,
        params.container.image_pull_policy,
        params.container.persistence_enabled,
        params.container.resources,
        params.container.env,
        params.container.command,
        params.container.args,
        params.container.extra_volume_mounts,
    ]
    if any(value is None for value in required):
        return False
    return bool(params.pvc.storage_size) and params.replicas >= 1
