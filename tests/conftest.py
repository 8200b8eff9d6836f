"""
Pytest configuration and fixtures.
"""
import copy
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from mongodb_operator.exceptions import ConflictError
from mongodb_operator.models.statefulset import (
    ContainerParameters,
    ObjectMetaParameters,
    OwnerReference,
    PVCParameters,
    StatefulSetParameters,
)


class FakeStatefulSetStore:
    """
    In-memory stand-in for the Kubernetes API server.

    Persists what it is given, stamps server-owned metadata and status the way
    the API server does, and enforces resourceVersion on update.
    """

    def __init__(self):
        self.objects: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.get_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None
        self._version = 100

    @property
    def mutations(self) -> List[Tuple[str, str, str]]:
        return [call for call in self.calls if call[0] in ("create", "update")]

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def put(self, obj: Dict[str, Any]) -> None:
        """Seed an object directly, bypassing call tracking."""
        key = (obj["metadata"]["namespace"], obj["metadata"]["name"])
        self.objects[key] = copy.deepcopy(obj)

    async def get(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        self.calls.append(("get", namespace, name))
        if self.get_error is not None:
            raise self.get_error
        obj = self.objects.get((namespace, name))
        return copy.deepcopy(obj) if obj is not None else None

    async def create(self, namespace: str, statefulset: Dict[str, Any]) -> Dict[str, Any]:
        name = statefulset["metadata"]["name"]
        self.calls.append(("create", namespace, name))
        if self.create_error is not None:
            raise self.create_error
        stored = copy.deepcopy(statefulset)
        stored["metadata"].update({
            "resourceVersion": self._next_version(),
            "creationTimestamp": "2024-01-01T00:00:00Z",
            "uid": "0d6f5a2e-statefulset",
            "managedFields": [{"manager": "mongodb-operator", "operation": "Update"}],
        })
        stored["status"] = {"replicas": 0, "availableReplicas": 0}
        self.objects[(namespace, name)] = stored
        return copy.deepcopy(stored)

    async def update(self, namespace: str, statefulset: Dict[str, Any]) -> Dict[str, Any]:
        name = statefulset["metadata"]["name"]
        self.calls.append(("update", namespace, name))
        if self.update_error is not None:
            raise self.update_error
        existing = self.objects[(namespace, name)]
        if statefulset["metadata"].get("resourceVersion") != existing["metadata"]["resourceVersion"]:
            raise ConflictError("the object has been modified")
        stored = copy.deepcopy(statefulset)
        stored["metadata"]["resourceVersion"] = self._next_version()
        if "uid" in existing["metadata"]:
            stored["metadata"]["uid"] = existing["metadata"]["uid"]
        stored["status"] = existing.get("status", {})
        self.objects[(namespace, name)] = stored
        return copy.deepcopy(stored)


@pytest.fixture
def fake_store() -> FakeStatefulSetStore:
    """Empty in-memory StatefulSet store."""
    return FakeStatefulSetStore()


@pytest.fixture
def owner_reference() -> OwnerReference:
    """Owner reference of the MongoDB custom resource."""
    return OwnerReference(
        api_version="opstreelabs.in/v1alpha1",
        kind="MongoDB",
        name="db",
        uid="4c1f9e8a-owner",
    )


@pytest.fixture
def statefulset_params(owner_reference: OwnerReference) -> StatefulSetParameters:
    """Typical parameters for a persistent three-member MongoDB StatefulSet."""
    return StatefulSetParameters(
        metadata=ObjectMetaParameters(
            name="db-0",
            labels={"app": "db-0", "mongodb_setup": "standalone"},
        ),
        owner=owner_reference,
        namespace="ns",
        container=ContainerParameters(
            image="quay.io/opstree/mongo:v5.0.6",
            persistence_enabled=True,
            resources={"requests": {"cpu": "100m", "memory": "128Mi"}},
        ),
        labels={"app": "db-0", "role": "standalone"},
        replicas=3,
        pvc=PVCParameters(
            name="db-0",
            access_modes=["ReadWriteOnce"],
            storage_size="10Gi",
            storage_class_name="standard",
        ),
    )


@pytest_asyncio.fixture
async def test_client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client backed by an in-memory store."""
    from mongodb_operator.main import app

    app.state.store = FakeStatefulSetStore()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.state.store = None
