"""
Core reconciliation logic for the MongoDB operator.

This package provides:
- Default-filling of StatefulSet parameters
- The create-or-update reconcile state machine

Import directly from submodules:
from mongodb_operator.core.defaults import apply_defaults
from mongodb_operator.core.reconciler import StatefulSetReconciler
"""
