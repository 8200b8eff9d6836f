"""
StatefulSet store - reads and writes StatefulSets through the Kubernetes API.

Objects cross this boundary as plain dicts in Kubernetes JSON form. A missing
object is reported as None; every other API failure is raised. No call is
retried here: the reconcile loop that drives the operator re-runs the whole
cycle instead.
"""
import json
from typing import Any, Dict, Optional

from kubernetes_asyncio import client, config
from kubernetes_asyncio.client import ApiException

from mongodb_operator.config.logging import get_logger, resource_logger
from mongodb_operator.config.settings import Settings, settings as default_settings
from mongodb_operator.exceptions import ConflictError, KubernetesError

logger = get_logger(__name__)

RESOURCE_TYPE = "StatefulSet"


async def create_api_client(app_settings: Optional[Settings] = None) -> client.ApiClient:
    """
    Create a Kubernetes API client from settings.

    Uses the in-cluster service account when ``k8s_in_cluster`` is set,
    otherwise the kubeconfig at ``kubeconfig_path`` (or the default location).

    Raises:
        KubernetesError: If no usable configuration can be loaded
    """
    app_settings = app_settings or default_settings
    configuration = client.Configuration()
    try:
        if app_settings.k8s_in_cluster:
            config.load_incluster_config(client_configuration=configuration)
        else:
            await config.load_kube_config(
                config_file=app_settings.kubeconfig_path,
                client_configuration=configuration,
            )
    except Exception as e:
        logger.error(
            "failed_to_load_kubernetes_configuration",
            in_cluster=app_settings.k8s_in_cluster,
            kubeconfig_path=app_settings.kubeconfig_path,
            error=str(e),
        )
        raise KubernetesError(f"Failed to load Kubernetes configuration: {e}") from e

    logger.info(
        "kubernetes_configuration_loaded",
        host=configuration.host,
        in_cluster=app_settings.k8s_in_cluster,
    )
    return client.ApiClient(configuration=configuration)


def _error_body(e: ApiException) -> Any:
    try:
        return json.loads(e.body) if e.body else None
    except (json.JSONDecodeError, ValueError, TypeError) as parse_error:
        logger.debug("api_error_body_parse_failed", error=str(parse_error))
        return e.body


class StatefulSetStore:
    """Fetch, create and update StatefulSets in the cluster."""

    def __init__(
        self,
        api_client: client.ApiClient,
        request_timeout: Optional[float] = None,
    ):
        self.api_client = api_client
        self.apps_api = client.AppsV1Api(api_client)
        self.request_timeout = request_timeout or default_settings.k8s_request_timeout_seconds

    def _to_dict(self, obj: Any) -> Dict[str, Any]:
        return self.api_client.sanitize_for_serialization(obj)

    async def get(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """
        Get the stored StatefulSet.

        Returns:
            StatefulSet as a dict, or None if it does not exist

        Raises:
            KubernetesError: On any failure other than not-found
        """
        log = resource_logger(name, namespace, RESOURCE_TYPE, logger)
        try:
            result = await self.apps_api.read_namespaced_stateful_set(
                name=name,
                namespace=namespace,
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            if e.status == 404:
                log.info("statefulset_not_found")
                return None
            log.error(
                "statefulset_get_failed",
                error=e.reason,
                status=e.status,
                error_body=_error_body(e),
            )
            raise KubernetesError(
                f"Failed to get StatefulSet {namespace}/{name}: {e.reason}",
                details={"status": e.status, "namespace": namespace, "name": name},
            ) from e

        log.info("statefulset_get_succeeded")
        return self._to_dict(result)

    async def create(self, namespace: str, statefulset: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a StatefulSet.

        Raises:
            ConflictError: If an object with the same name already exists
            KubernetesError: On any other failure
        """
        name = statefulset["metadata"]["name"]
        log = resource_logger(name, namespace, RESOURCE_TYPE, logger)
        try:
            result = await self.apps_api.create_namespaced_stateful_set(
                namespace=namespace,
                body=statefulset,
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            log.error(
                "statefulset_creation_failed",
                error=e.reason,
                status=e.status,
                error_body=_error_body(e),
            )
            self._raise(e, "create", namespace, name)

        log.info("statefulset_created")
        return self._to_dict(result)

    async def update(self, namespace: str, statefulset: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace a StatefulSet.

        The body must carry the resourceVersion it was derived from; the API
        server rejects the write with 409 if the object changed since.

        Raises:
            ConflictError: If the resource version is stale
            KubernetesError: On any other failure
        """
        name = statefulset["metadata"]["name"]
        log = resource_logger(name, namespace, RESOURCE_TYPE, logger)
        try:
            result = await self.apps_api.replace_namespaced_stateful_set(
                name=name,
                namespace=namespace,
                body=statefulset,
                _request_timeout=self.request_timeout,
            )
        except ApiException as e:
            log.error(
                "statefulset_update_failed",
                error=e.reason,
                status=e.status,
                error_body=_error_body(e),
            )
            self._raise(e, "update", namespace, name)

        log.info("statefulset_updated")
        return self._to_dict(result)

    @staticmethod
    def _raise(e: ApiException, operation: str, namespace: str, name: str) -> None:
        details = {
            "operation": operation,
            "status": e.status,
            "namespace": namespace,
            "name": name,
        }
        if e.status == 409:
            raise ConflictError(
                f"Conflict during StatefulSet {operation} of {namespace}/{name}: {e.reason}",
                details=details,
            ) from e
        raise KubernetesError(
            f"Failed to {operation} StatefulSet {namespace}/{name}: {e.reason}",
            details=details,
        ) from e

    async def close(self) -> None:
        """Close the underlying API client."""
        await self.api_client.close()
