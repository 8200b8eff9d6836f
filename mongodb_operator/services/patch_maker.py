"""
Patch calculation between a stored object and a synthesized one.

The patch is a three-way merge in the style of ``kubectl apply``:

- original: the last applied snapshot, kept in an annotation on the stored object
- current: the object as stored by the API server
- modified: the freshly synthesized object

The merge itself is ``openshift.dynamic.apply.merge``: deletions come from
``original`` versus ``modified``, changes from ``current`` versus ``modified``,
and pod spec lists (containers, volumes, volumeMounts, env...) merge on their
strategic merge keys. Fields the server added on its own are kept because the
merged list items start from the stored ones.

Whether anything changes is decided by ``recursive_diff`` between ``current``
and ``current`` with the patch applied; when they match the patch is ``{}``.
"""
import copy
import json
from typing import Any, Callable, Dict, Optional, Tuple

from openshift.dynamic.apply import merge, recursive_diff
from openshift.dynamic.exceptions import ApplyException

from mongodb_operator.config.logging import get_logger
from mongodb_operator.config.settings import settings
from mongodb_operator.exceptions import PatchCalculationError

logger = get_logger(__name__)

CalculateOption = Callable[[Dict[str, Any]], Dict[str, Any]]

SERVER_METADATA = ("resourceVersion", "creationTimestamp", "managedFields", "uid", "generation")


def _dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"))


class Annotator:
    """Reads and writes the last applied snapshot annotation."""

    def __init__(self, annotation: Optional[str] = None):
        self.annotation = annotation or settings.last_applied_annotation

    def _snapshot(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        snapshot = copy.deepcopy(obj)
        snapshot.pop("status", None)
        metadata = snapshot.get("metadata") or {}
        for field in SERVER_METADATA:
            metadata.pop(field, None)
        annotations = metadata.get("annotations")
        if annotations is not None:
            annotations.pop(self.annotation, None)
            if not annotations:
                del snapshot["metadata"]["annotations"]
        return snapshot

    def set_last_applied(self, obj: Dict[str, Any]) -> None:
        """
        Record a snapshot of ``obj`` in its own annotations.

        Raises:
            PatchCalculationError: If the object cannot be serialized
        """
        if obj is None:
            raise PatchCalculationError("cannot annotate a missing object")
        try:
            value = _dumps(self._snapshot(obj))
        except (TypeError, ValueError) as e:
            raise PatchCalculationError(
                f"unable to serialize last applied state: {e}"
            ) from e
        obj.setdefault("metadata", {})
        if obj["metadata"].get("annotations") is None:
            obj["metadata"]["annotations"] = {}
        obj["metadata"]["annotations"][self.annotation] = value

    def get_original(self, obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the last applied snapshot of ``obj``, or None."""
        raw = ((obj or {}).get("metadata") or {}).get("annotations", {}) or {}
        value = raw.get(self.annotation)
        if not value:
            return None
        try:
            original = json.loads(value)
        except ValueError:
            logger.warning("last_applied_annotation_unreadable", annotation=self.annotation)
            return None
        return original if isinstance(original, dict) else None


# Ignore rules -----------------------------------------------------------------

def ignore_field(field: str) -> CalculateOption:
    """Drop a top-level field before comparison."""
    def option(obj: Dict[str, Any]) -> Dict[str, Any]:
        obj.pop(field, None)
        return obj
    return option


def ignore_status_fields() -> CalculateOption:
    """Drop the status subtree, it is owned by the controllers."""
    return ignore_field("status")


def ignore_volume_claim_template_type_meta_and_status() -> CalculateOption:
    """
    Drop the volatile parts of each volume claim template.

    The API server strips kind/apiVersion from claim templates, adds an empty
    status and sets volumeMode on the spec.
    """
    def option(obj: Dict[str, Any]) -> Dict[str, Any]:
        templates = (obj.get("spec") or {}).get("volumeClaimTemplates") or []
        for template in templates:
            if not isinstance(template, dict):
                continue
            template.pop("kind", None)
            template.pop("apiVersion", None)
            template.pop("status", None)
            metadata = template.get("metadata")
            if isinstance(metadata, dict):
                metadata.pop("creationTimestamp", None)
            spec = template.get("spec")
            if isinstance(spec, dict) and spec.get("volumeMode") == "Filesystem":
                spec.pop("volumeMode")
        return obj
    return option


# Three-way merge --------------------------------------------------------------

def _drop_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _drop_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_drop_nulls(v) for v in value]
    return value


def _omit_empty(modified: Dict[str, Any], current: Any) -> Dict[str, Any]:
    """Drop empty maps and lists from ``modified`` that ``current`` does not carry."""
    current = current if isinstance(current, dict) else {}
    result: Dict[str, Any] = {}
    for key, value in modified.items():
        if value in ({}, []) and key not in current:
            continue
        if isinstance(value, dict):
            value = _omit_empty(value, current.get(key))
        result[key] = value
    return result


def _apply_merge_patch(obj: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Apply a JSON merge patch: nulls delete, maps merge, everything else replaces."""
    result = copy.deepcopy(obj)
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        elif isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _apply_merge_patch(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


class PatchResult:
    """Outcome of a patch calculation."""

    def __init__(
        self,
        patch: bytes,
        current: Dict[str, Any],
        modified: Dict[str, Any],
        original: Optional[Dict[str, Any]],
        diff: Optional[Tuple[Dict[str, Any], Dict[str, Any]]] = None,
    ):
        self.patch = patch
        self.current = current
        self.modified = modified
        self.original = original
        self.diff = diff

    def is_empty(self) -> bool:
        """True when the stored object already matches the desired one."""
        return self.patch == b"{}"

    def __repr__(self) -> str:
        return f"PatchResult(patch={self.patch!r})"


class PatchMaker:
    """
    Computes structural patches between stored and desired objects.

    ``position`` is the kind used to look up strategic merge keys
    (``StatefulSet.spec.template.spec.containers`` merges by ``name``...).
    It is passed explicitly because the ignore rules strip ``kind``.
    """

    def __init__(self, annotator: Optional[Annotator] = None, position: str = "StatefulSet"):
        self.annotator = annotator or Annotator()
        self.position = position

    def calculate(
        self,
        current: Dict[str, Any],
        modified: Dict[str, Any],
        *opts: CalculateOption,
    ) -> PatchResult:
        """
        Calculate the patch from ``current`` to ``modified``.

        Args:
            current: Object as stored by the API server
            modified: Desired object
            *opts: Ignore rules applied to all three versions before comparison

        Returns:
            PatchResult with the serialized patch, ``{}`` when nothing changes

        Raises:
            PatchCalculationError: If either object is missing or the merge fails
        """
        if current is None or modified is None:
            raise PatchCalculationError("both current and modified objects are required")

        # Read the snapshot before the ignore rules strip metadata
        original = self.annotator.get_original(current) or {}

        current = copy.deepcopy(current)
        modified = _drop_nulls(copy.deepcopy(modified))
        original = _drop_nulls(copy.deepcopy(original))

        for opt in opts:
            current = opt(current)
            modified = opt(modified)
            original = opt(original)

        modified = _omit_empty(modified, current)

        try:
            patch = merge(original, modified, current, self.position)
            diff = recursive_diff(current, _apply_merge_patch(current, patch), self.position)
            serialized = _dumps(patch if diff else {}).encode("utf-8")
        except (ApplyException, AttributeError, TypeError, ValueError) as e:
            raise PatchCalculationError(str(e)) from e

        return PatchResult(
            patch=serialized,
            current=current,
            modified=modified,
            original=original,
            diff=diff,
        )
