"""
Tests for the Kubernetes-backed StatefulSet store.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from kubernetes_asyncio.client import ApiException

from mongodb_operator.exceptions import ConflictError, KubernetesError
from mongodb_operator.config.settings import Settings
from mongodb_operator.services.statefulset_store import StatefulSetStore, create_api_client

STATEFULSET = {
    "apiVersion": "apps/v1",
    "kind": "StatefulSet",
    "metadata": {"name": "db-0", "namespace": "ns", "resourceVersion": "12"},
    "spec": {"replicas": 3},
}


@pytest.fixture
def api_client():
    api_client = MagicMock()
    api_client.sanitize_for_serialization.side_effect = lambda obj: obj
    api_client.close = AsyncMock()
    return api_client


@pytest.fixture
def store(api_client):
    store = StatefulSetStore(api_client, request_timeout=5)
    store.apps_api = MagicMock()
    store.apps_api.read_namespaced_stateful_set = AsyncMock()
    store.apps_api.create_namespaced_stateful_set = AsyncMock()
    store.apps_api.replace_namespaced_stateful_set = AsyncMock()
    return store


@pytest.mark.asyncio
async def test_get_returns_stored_object(store):
    store.apps_api.read_namespaced_stateful_set.return_value = STATEFULSET

    result = await store.get("ns", "db-0")

    assert result == STATEFULSET
    store.apps_api.read_namespaced_stateful_set.assert_awaited_once_with(
        name="db-0", namespace="ns", _request_timeout=5
    )


@pytest.mark.asyncio
async def test_get_not_found_returns_none(store):
    store.apps_api.read_namespaced_stateful_set.side_effect = ApiException(status=404, reason="Not Found")

    assert await store.get("ns", "db-0") is None


@pytest.mark.asyncio
async def test_get_other_failure_raises(store):
    store.apps_api.read_namespaced_stateful_set.side_effect = ApiException(status=403, reason="Forbidden")

    with pytest.raises(KubernetesError) as exc_info:
        await store.get("ns", "db-0")

    assert exc_info.value.details["status"] == 403
    assert isinstance(exc_info.value.__cause__, ApiException)


@pytest.mark.asyncio
async def test_create_submits_body(store):
    store.apps_api.create_namespaced_stateful_set.return_value = STATEFULSET

    await store.create("ns", STATEFULSET)

    store.apps_api.create_namespaced_stateful_set.assert_awaited_once_with(
        namespace="ns", body=STATEFULSET, _request_timeout=5
    )


@pytest.mark.asyncio
async def test_create_already_exists_raises_conflict(store):
    store.apps_api.create_namespaced_stateful_set.side_effect = ApiException(status=409, reason="AlreadyExists")

    with pytest.raises(ConflictError):
        await store.create("ns", STATEFULSET)


@pytest.mark.asyncio
async def test_update_replaces_object(store):
    store.apps_api.replace_namespaced_stateful_set.return_value = STATEFULSET

    await store.update("ns", STATEFULSET)

    store.apps_api.replace_namespaced_stateful_set.assert_awaited_once_with(
        name="db-0", namespace="ns", body=STATEFULSET, _request_timeout=5
    )


@pytest.mark.asyncio
async def test_update_stale_version_raises_conflict(store):
    store.apps_api.replace_namespaced_stateful_set.side_effect = ApiException(status=409, reason="Conflict")

    with pytest.raises(ConflictError) as exc_info:
        await store.update("ns", STATEFULSET)

    assert exc_info.value.details["operation"] == "update"


@pytest.mark.asyncio
async def test_update_server_error_raises(store):
    store.apps_api.replace_namespaced_stateful_set.side_effect = ApiException(status=500, reason="Internal")

    with pytest.raises(KubernetesError):
        await store.update("ns", STATEFULSET)


@pytest.mark.asyncio
async def test_close_closes_api_client(store, api_client):
    await store.close()

    api_client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_api_client_in_cluster():
    app_settings = Settings(k8s_in_cluster=True)

    with patch("mongodb_operator.services.statefulset_store.config") as kube_config:
        api_client = await create_api_client(app_settings)

    kube_config.load_incluster_config.assert_called_once()
    kube_config.load_kube_config.assert_not_called()
    await api_client.close()


@pytest.mark.asyncio
async def test_create_api_client_from_kubeconfig():
    app_settings = Settings(k8s_in_cluster=False, kubeconfig_path="/tmp/kubeconfig")

    with patch("mongodb_operator.services.statefulset_store.config") as kube_config:
        kube_config.load_kube_config = AsyncMock()
        api_client = await create_api_client(app_settings)

    assert kube_config.load_kube_config.await_args.kwargs["config_file"] == "/tmp/kubeconfig"
    await api_client.close()


@pytest.mark.asyncio
async def test_create_api_client_wraps_config_errors():
    app_settings = Settings(k8s_in_cluster=False)

    with patch("mongodb_operator.services.statefulset_store.config") as kube_config:
        kube_config.load_kube_config = AsyncMock(side_effect=FileNotFoundError("no kubeconfig"))
        with pytest.raises(KubernetesError) as exc_info:
            await create_api_client(app_settings)

    assert "no kubeconfig" in exc_info.value.message
    assert isinstance(exc_info.value.__cause__, FileNotFoundError)
