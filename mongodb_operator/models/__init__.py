from mongodb_operator.models.statefulset import (
    ContainerParameters,
    ObjectMetaParameters,
    OwnerReference,
    PVCParameters,
    StatefulSetParameters,
)

__all__ = [
    "ContainerParameters",
    "ObjectMetaParameters",
    "OwnerReference",
    "PVCParameters",
    "StatefulSetParameters",
]
