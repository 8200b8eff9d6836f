"""
StatefulSet reconciliation API endpoints.

URL Pattern: /api/v1/statefulsets
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from mongodb_operator.config.logging import get_logger
from mongodb_operator.core.reconciler import ReconcileResult, StatefulSetReconciler
from mongodb_operator.exceptions import KubernetesError
from mongodb_operator.models.statefulset import StatefulSetParameters
from mongodb_operator.services.statefulset_builder import generate_statefulset_def

router = APIRouter()
logger = get_logger(__name__)


def get_store(request: Request) -> Any:
    """Return the StatefulSet store configured at startup."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise KubernetesError("Kubernetes client is not configured")
    return store


@router.post("/reconcile", response_model=ReconcileResult)
async def reconcile_statefulset(
    params: StatefulSetParameters,
    store: Any = Depends(get_store),
) -> ReconcileResult:
    """
    Run one reconcile cycle for a MongoDB StatefulSet.

    Creates the StatefulSet if it does not exist, updates it if it drifted
    from the requested parameters, and does nothing otherwise.
    """
    logger.info(
        "reconcile_requested",
        name=params.metadata.name,
        namespace=params.namespace,
    )
    return await StatefulSetReconciler(store).reconcile(params)


@router.post("/render")
async def render_statefulset(params: StatefulSetParameters) -> Dict[str, Any]:
    """
    Render the StatefulSet the given parameters would produce.

    Dry run: nothing is read from or written to the cluster.
    """
    return generate_statefulset_def(params)
