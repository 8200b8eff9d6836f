"""
StatefulSet reconciler.

One reconcile cycle brings the MongoDB StatefulSet in line with the requested
parameters:

- ABSENT: the object does not exist -> synthesize, snapshot, create
- PRESENT: the object exists -> synthesize, carry over server-owned metadata,
  patch-compare, update only if something changed
- FETCH_FAILED: reading the object failed -> abort, nothing is written

A cycle issues at most one write. Nothing is retried here; a failed cycle is
simply run again by the caller against the then-current stored object.

Usage:
    >>> store = StatefulSetStore(api_client)
    >>> reconciler = StatefulSetReconciler(store)
    >>> result = await reconciler.reconcile(params)
    >>> result.action
    <ReconcileAction.CREATED: 'created'>
"""
import copy
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from mongodb_operator.config.logging import get_logger, resource_logger
from mongodb_operator.core.defaults import apply_defaults
from mongodb_operator.exceptions import InconsistentStateError, OperatorException
from mongodb_operator.models.statefulset import StatefulSetParameters
from mongodb_operator.services.patch_maker import (
    Annotator,
    PatchMaker,
    ignore_field,
    ignore_status_fields,
    ignore_volume_claim_template_type_meta_and_status,
)
from mongodb_operator.services.statefulset_builder import (
    synthesize_statefulset,
    validate_identity,
)

logger = get_logger(__name__)

RESOURCE_TYPE = "StatefulSet"

# Metadata owned by the API server; copied from the stored object, never authored
STORE_OWNED_METADATA = ("resourceVersion", "creationTimestamp", "managedFields")


class ReconcileState(str, Enum):
    """What the fetch step observed."""
    ABSENT = "absent"
    PRESENT = "present"
    FETCH_FAILED = "fetch_failed"


class ReconcileAction(str, Enum):
    """What the cycle did to the cluster."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class ReconcileResult(BaseModel):
    """Outcome of one reconcile cycle."""

    name: str
    namespace: str
    state: ReconcileState
    action: ReconcileAction
    patch: Optional[str] = Field(default=None, description="Patch applied on update")


class StatefulSetReconciler:
    """
    Create-or-update state machine for a MongoDB StatefulSet.

    The store client and logger are injected; the reconciler keeps no state
    between cycles.
    """

    def __init__(
        self,
        store: Any,
        patch_maker: Optional[PatchMaker] = None,
        annotator: Optional[Annotator] = None,
        log: Optional[Any] = None,
    ):
        """
        Initialize the reconciler.

        Args:
            store: Object with async get/create/update (e.g. StatefulSetStore)
            patch_maker: Patch engine (defaults to one sharing ``annotator``)
            annotator: Last applied snapshot annotator
            log: Base logger
        """
        self.store = store
        self.annotator = annotator or (patch_maker.annotator if patch_maker else Annotator())
        self.patch_maker = patch_maker or PatchMaker(self.annotator)
        self.logger = log if log is not None else logger

    async def reconcile(self, params: StatefulSetParameters) -> ReconcileResult:
        """
        Run one reconcile cycle.

        Args:
            params: Desired StatefulSet parameters

        Returns:
            ReconcileResult describing the observed state and the action taken

        Raises:
            ValidationError: If name or namespace is empty (the store is not contacted)
            KubernetesError: If fetching or writing the object fails
            ConflictError: If the stored object changed concurrently
            PatchCalculationError: If the patch cannot be computed
            InconsistentStateError: If the stored object is missing on the update path
        """
        validate_identity(params)
        name = params.metadata.name
        namespace = params.namespace
        log = resource_logger(name, namespace, RESOURCE_TYPE, self.logger)

        try:
            stored = await self.store.get(namespace, name)
        except Exception as e:
            log.error("statefulset_fetch_failed", state=ReconcileState.FETCH_FAILED.value, error=str(e))
            raise

        if stored is None:
            log.info("statefulset_not_present")
            state = ReconcileState.ABSENT
        else:
            state = ReconcileState.PRESENT

        defaulted = apply_defaults(params, log)
        try:
            desired = synthesize_statefulset(defaulted)
        except OperatorException as e:
            log.error("statefulset_synthesis_failed", error=e.message, details=e.details)
            raise

        if state == ReconcileState.ABSENT:
            return await self._create(namespace, desired, log)
        return await self._patch(stored, desired, namespace, log)

    async def _create(
        self,
        namespace: str,
        desired: Dict[str, Any],
        log: Any,
    ) -> ReconcileResult:
        self.annotator.set_last_applied(desired)
        log.info("statefulset_creating")
        await self.store.create(namespace, desired)
        return ReconcileResult(
            name=desired["metadata"]["name"],
            namespace=namespace,
            state=ReconcileState.ABSENT,
            action=ReconcileAction.CREATED,
        )

    async def _patch(
        self,
        stored: Optional[Dict[str, Any]],
        desired: Dict[str, Any],
        namespace: str,
        log: Any,
    ) -> ReconcileResult:
        if stored is None:
            raise InconsistentStateError(
                "stored StatefulSet is missing, cannot patch",
                details={"namespace": namespace},
            )

        stored_metadata = stored.get("metadata") or {}
        desired_metadata = desired.setdefault("metadata", {})
        for field in STORE_OWNED_METADATA:
            if field in stored_metadata:
                desired_metadata[field] = copy.deepcopy(stored_metadata[field])

        result = self.patch_maker.calculate(
            stored,
            desired,
            ignore_status_fields(),
            ignore_volume_claim_template_type_meta_and_status(),
            ignore_field("kind"),
            ignore_field("apiVersion"),
            ignore_field("metadata"),
        )

        name = desired_metadata.get("name")
        if result.is_empty():
            log.info("statefulset_no_changes_required")
            return ReconcileResult(
                name=name,
                namespace=namespace,
                state=ReconcileState.PRESENT,
                action=ReconcileAction.UNCHANGED,
            )

        patch = result.patch.decode("utf-8")
        log.info("statefulset_updating", patch=patch)

        # Keep annotations other actors put on the object
        if desired_metadata.get("annotations") is None:
            desired_metadata["annotations"] = {}
        for key, value in (stored_metadata.get("annotations") or {}).items():
            desired_metadata["annotations"].setdefault(key, value)

        self.annotator.set_last_applied(desired)
        await self.store.update(namespace, desired)
        return ReconcileResult(
            name=name,
            namespace=namespace,
            state=ReconcileState.PRESENT,
            action=ReconcileAction.UPDATED,
            patch=patch,
        )


async def create_or_update_statefulset(
    store: Any,
    params: StatefulSetParameters,
) -> ReconcileResult:
    """Reconcile ``params`` against ``store`` with default collaborators."""
    return await StatefulSetReconciler(store).reconcile(params)
