"""
Unit tests for ownership labels.

Tests:
- Owner identity and mode labels
- Idempotent label merging
- Cleanup selectors
- ownerReferences and recommended app labels
"""

import pytest

pytest.importorskip("kubernetes")

from platform_controller import __version__
from platform_controller.services.capabilities.labels import (
    owner_labels,
    owner_reference,
    ownership_labels,
    ownership_selector,
    standard_labels,
    with_labels,
    with_ownership,
)
from platform_controller.services.capabilities.modes import RouteType


@pytest.fixture
def owner(make_component):
    component = make_component(labels={"app.kubernetes.io/name": "dashboard", "app.kubernetes.io/component": "ui"})
    component["metadata"]["uid"] = "1234-abcd"
    return component


@pytest.mark.unit
class TestOwnershipLabels:
    """Test owner_labels, ownership_labels and with_ownership."""

    def test_owner_labels(self, owner):
        """Owner labels carry name, kind and uid of the watched resource."""
        assert owner_labels(owner) == {
            "platform.opendatahub.io/owner-name": "comp1",
            "platform.opendatahub.io/owner-kind": "Component",
            "platform.opendatahub.io/owner-uid": "1234-abcd",
        }

    def test_ownership_labels_add_mode_and_manager(self, owner):
        """The producing mode and manager are recorded."""
        labels = ownership_labels(owner, RouteType.EXTERNAL, "odh-routing-controller")
        assert labels["routing.opendatahub.io/type"] == "external"
        assert labels["app.kubernetes.io/managed-by"] == "odh-routing-controller"

    def test_with_ownership_keeps_existing_labels(self, owner):
        """Existing labels with other keys survive."""
        resource = {"kind": "Gateway", "metadata": {"name": "gw", "labels": {"keep": "me"}}}
        labelled = with_ownership(resource, owner, RouteType.PUBLIC)

        assert labelled["metadata"]["labels"]["keep"] == "me"
        assert labelled["metadata"]["labels"]["platform.opendatahub.io/owner-uid"] == "1234-abcd"

    def test_with_ownership_does_not_modify_input(self, owner):
        """The input resource is left untouched."""
        resource = {"kind": "Gateway", "metadata": {"name": "gw"}}
        with_ownership(resource, owner, RouteType.PUBLIC)
        assert "labels" not in resource["metadata"]

    def test_with_labels_is_idempotent(self):
        """Applying the same labels twice gives the same result."""
        resource = {"metadata": {"name": "x", "labels": {"a": "1"}}}
        once = with_labels(resource, {"b": "2"})
        twice = with_labels(once, {"b": "2"})
        assert once == twice
        assert twice["metadata"]["labels"] == {"a": "1", "b": "2"}

    def test_with_labels_creates_metadata(self):
        """Resources without metadata get one."""
        assert with_labels({}, {"a": "1"}) == {"metadata": {"labels": {"a": "1"}}}


@pytest.mark.unit
class TestOwnershipSelector:
    """Test ownership_selector."""

    def test_selector_for_all_modes(self, owner):
        """The selector matches owner identity and any of the given modes."""
        selector = ownership_selector(owner, [RouteType.PUBLIC, RouteType.EXTERNAL])
        assert selector == (
            "platform.opendatahub.io/owner-name=comp1,"
            "platform.opendatahub.io/owner-kind=Component,"
            "platform.opendatahub.io/owner-uid=1234-abcd,"
            "routing.opendatahub.io/type in (public,external)"
        )

    def test_selector_for_single_mode(self, owner):
        """Unused-mode cleanup selects only that mode."""
        selector = ownership_selector(owner, [RouteType.EXTERNAL])
        assert selector.endswith("routing.opendatahub.io/type in (external)")


@pytest.mark.unit
class TestStandardLabels:
    """Test owner_reference and standard_labels."""

    def test_owner_reference(self, owner):
        """The ownerReference points at the watched resource as controller."""
        assert owner_reference(owner) == {
            "apiVersion": "components.platform.opendatahub.io/v1alpha1",
            "kind": "Component",
            "name": "comp1",
            "uid": "1234-abcd",
            "controller": True,
        }

    def test_standard_labels(self, owner):
        """part-of and component come from the watched resource's labels."""
        assert standard_labels(owner, "odh-platform") == {
            "app.kubernetes.io/part-of": "dashboard",
            "app.kubernetes.io/component": "ui",
            "app.kubernetes.io/version": __version__,
            "app.kubernetes.io/managed-by": "odh-platform",
        }

    def test_standard_labels_without_source_labels(self, make_component):
        """Missing source labels become empty values."""
        labels = standard_labels(make_component())
        assert labels["app.kubernetes.io/part-of"] == ""
        assert labels["app.kubernetes.io/component"] == ""


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
