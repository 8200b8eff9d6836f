"""
Pydantic models for StatefulSet reconciliation parameters.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class OwnerReference(BaseModel):
    """Back-link from the StatefulSet to the custom resource that owns it."""

    api_version: str = Field(..., description="API version of the owner (e.g., 'opstreelabs.in/v1alpha1')")
    kind: str = Field(..., description="Kind of the owner (e.g., 'MongoDBCluster')")
    name: str = Field(..., description="Name of the owner")
    uid: str = Field(..., description="UID of the owner")
    controller: Optional[bool] = Field(default=True, description="Owner is the managing controller")
    block_owner_deletion: Optional[bool] = Field(
        default=True, description="Block owner deletion until this object is gone"
    )

    def to_manifest(self) -> Dict[str, Any]:
        """Render as a Kubernetes ownerReferences entry."""
        ref: Dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
        }
        if self.controller is not None:
            ref["controller"] = self.controller
        if self.block_owner_deletion is not None:
            ref["blockOwnerDeletion"] = self.block_owner_deletion
        return ref


class ObjectMetaParameters(BaseModel):
    """Identity and metadata of the StatefulSet itself."""

    name: str = Field(default="", description="StatefulSet name")
    labels: Optional[Dict[str, str]] = Field(default=None, description="StatefulSet labels")
    annotations: Optional[Dict[str, str]] = Field(default=None, description="StatefulSet annotations")


class ContainerParameters(BaseModel):
    """Inputs for the MongoDB container of the pod template."""

    image: str = Field(..., min_length=1, description="Container image (e.g., 'mongo:6.0')")
    image_pull_policy: Optional[str] = Field(default=None, description="Always, IfNotPresent or Never")
    resources: Optional[Dict[str, Dict[str, str]]] = Field(
        default=None, description="Resource requirements ({'requests': {...}, 'limits': {...}})"
    )
    persistence_enabled: Optional[bool] = Field(default=None, description="Attach a persistent data volume")
    port: int = Field(default=27017, ge=1, le=65535, description="MongoDB listen port")
    command: Optional[List[str]] = Field(default=None, description="Container entrypoint override")
    args: Optional[List[str]] = Field(default=None, description="Container arguments")
    env: Optional[Dict[str, str]] = Field(default=None, description="Environment variables")
    extra_volume_mounts: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Additional volume mounts in Kubernetes form"
    )

    @field_validator("image_pull_policy")
    @classmethod
    def validate_image_pull_policy(cls, v: Optional[str]) -> Optional[str]:
        """Validate image pull policy."""
        if v is not None and v not in ("Always", "IfNotPresent", "Never"):
            raise ValueError("image_pull_policy must be one of Always, IfNotPresent, Never")
        return v


class PVCParameters(BaseModel):
    """Inputs for the volume claim template."""

    name: str = Field(default="data", description="Volume claim template name")
    labels: Optional[Dict[str, str]] = Field(default=None, description="PVC labels")
    annotations: Optional[Dict[str, str]] = Field(default=None, description="PVC annotations")
    access_modes: Optional[List[str]] = Field(default=None, description="PVC access modes")
    storage_class_name: Optional[str] = Field(default=None, description="Storage class name")
    storage_size: Optional[str] = Field(default=None, description="Requested size (e.g., '10Gi')")


class StatefulSetParameters(BaseModel):
    """Everything needed to synthesize and reconcile one MongoDB StatefulSet."""

    metadata: ObjectMetaParameters = Field(default_factory=ObjectMetaParameters)
    owner: Optional[OwnerReference] = Field(default=None, description="Owning custom resource")
    namespace: str = Field(default="", description="Kubernetes namespace")
    container: ContainerParameters
    labels: Optional[Dict[str, str]] = Field(default=None, description="Pod labels, also used as selector")
    annotations: Optional[Dict[str, str]] = Field(default=None, description="Pod annotations")
    replicas: Optional[int] = Field(default=None, ge=1, description="Desired replica count")
    pvc: PVCParameters = Field(default_factory=PVCParameters)
    extra_volumes: Optional[List[Dict[str, Any]]] = Field(
        default=None, description="Additional pod volumes in Kubernetes form"
    )
    image_pull_secret: Optional[str] = Field(default=None, description="Image pull secret name")
    affinity: Optional[Dict[str, Any]] = Field(default=None, description="Pod affinity")
    node_selector: Optional[Dict[str, str]] = Field(default=None, description="Node selector")
    tolerations: Optional[List[Dict[str, Any]]] = Field(default=None, description="Pod tolerations")
    priority_class_name: Optional[str] = Field(default=None, description="Priority class name")
    additional_config: Optional[str] = Field(
        default=None, description="ConfigMap with extra MongoDB configuration"
    )
    security_context: Optional[Dict[str, Any]] = Field(default=None, description="Pod security context")
