"""
Tests for the structlog configuration.
"""
from unittest.mock import MagicMock

import pytest

from mongodb_operator.config.logging import (
    add_resource_reference,
    resource_logger,
    use_json_output,
)
from mongodb_operator.config.settings import settings


def test_resource_reference_is_added_for_bound_events():
    event = {"event": "statefulset_creating", "resource_type": "StatefulSet", "namespace": "ns", "name": "db-0"}

    assert add_resource_reference(None, "info", event)["resource"] == "StatefulSet/ns/db-0"


def test_resource_reference_is_skipped_for_unbound_events():
    event = {"event": "application_starting", "name": "db-0"}

    assert "resource" not in add_resource_reference(None, "info", event)


def test_resource_logger_binds_identity():
    base = MagicMock()

    bound = resource_logger("db-0", "ns", "StatefulSet", base)

    base.bind.assert_called_once_with(namespace="ns", name="db-0", resource_type="StatefulSet")
    assert bound is base.bind.return_value


@pytest.mark.parametrize(
    "log_json,in_cluster,environment,expected",
    [
        (None, False, "development", False),
        (None, True, "development", True),
        (None, False, "production", True),
        (False, True, "production", False),
        (True, False, "testing", True),
    ],
)
def test_json_output_selection(monkeypatch, log_json, in_cluster, environment, expected):
    monkeypatch.setattr(settings, "log_json", log_json)
    monkeypatch.setattr(settings, "k8s_in_cluster", in_cluster)
    monkeypatch.setattr(settings, "environment", environment)

    assert use_json_output() is expected
