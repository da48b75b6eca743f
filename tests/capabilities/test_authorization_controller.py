"""
Tests for the authorization capability controller.
"""

import pytest

pytest.importorskip("kubernetes")

from platform_controller.errors import InvalidConfigurationError
from platform_controller.schemas import ProtectedResource
from platform_controller.services.capabilities.authorization import AuthorizationController
from platform_controller.services.kubernetes.gvk import GroupVersionKind

AUTH_CONFIG = GroupVersionKind("authorino.kuadrant.io", "v1beta2", "AuthConfig")
AUTHORIZATION_POLICY = GroupVersionKind("security.istio.io", "v1beta1", "AuthorizationPolicy")


@pytest.fixture
def protected_resource():
    return ProtectedResource.model_validate({
        "ref": {
            "group": "components.platform.opendatahub.io",
            "version": "v1alpha1",
            "kind": "Component",
        },
        "workloadSelector": {"app": "{{.metadata.name}}"},
        "hostPaths": ["status.url"],
        "ports": ["8443"],
    })


@pytest.fixture
def controller(cluster, protected_resource, settings):
    return AuthorizationController(cluster, protected_resource, settings)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestAuthorizationController:
    """Test AuthConfig and AuthorizationPolicy reconciliation."""

    @pytest.mark.asyncio
    async def test_anonymous_by_default(self, cluster, controller, make_component):
        """Without the enable-auth annotation the AuthConfig allows anonymous access."""
        component = cluster.add(make_component(status={"url": "https://comp1.apps.example.com"}))

        await controller.reconcile("comp1", "test-ns")

        auth_config = cluster.lookup(AUTH_CONFIG, "comp1", "test-ns")
        assert "anonymous-access" in auth_config["spec"]["authentication"]
        assert auth_config["spec"]["hosts"] == ["comp1.apps.example.com"]
        assert auth_config["metadata"]["labels"]["security.opendatahub.io/authorization-group"] == "default"
        assert auth_config["metadata"]["ownerReferences"][0]["uid"] == component["metadata"]["uid"]

    @pytest.mark.asyncio
    async def test_user_defined_auth(self, cluster, controller, make_component):
        """enable-auth=true switches to token review and RBAC."""
        cluster.add(make_component(annotations={"security.opendatahub.io/enable-auth": "true"}))

        await controller.reconcile("comp1", "test-ns")

        auth_config = cluster.lookup(AUTH_CONFIG, "comp1", "test-ns")
        assert "kubernetes-user" in auth_config["spec"]["authentication"]
        assert auth_config["spec"]["hosts"] == ["unknown.host.com"]

    @pytest.mark.asyncio
    async def test_switching_auth_type_updates_auth_config(self, cluster, controller, make_component):
        """Turning auth on replaces the anonymous AuthConfig spec."""
        cluster.add(make_component())
        await controller.reconcile("comp1", "test-ns")

        component_gvk = GroupVersionKind("components.platform.opendatahub.io", "v1alpha1", "Component")
        await cluster.patch(component_gvk, "comp1", "test-ns", {
            "metadata": {"annotations": {"security.opendatahub.io/enable-auth": "true"}},
        })
        await controller.reconcile("comp1", "test-ns")

        auth_config = cluster.lookup(AUTH_CONFIG, "comp1", "test-ns")
        assert set(auth_config["spec"]["authentication"]) == {"kubernetes-user"}

    @pytest.mark.asyncio
    async def test_authorization_policy(self, cluster, controller, settings, make_component):
        """The policy selects the workload and routes it through the auth provider."""
        cluster.add(make_component())

        await controller.reconcile("comp1", "test-ns")

        policy = cluster.lookup(AUTHORIZATION_POLICY, "comp1", "test-ns")
        assert policy["spec"]["selector"] == {"matchLabels": {"app": "comp1"}}
        assert policy["spec"]["provider"] == {"name": settings.auth_provider}
        assert policy["metadata"]["labels"]["app.kubernetes.io/managed-by"] == settings.field_manager

    @pytest.mark.asyncio
    async def test_second_pass_writes_nothing(self, cluster, controller, make_component):
        """A converged protected resource costs no writes."""
        cluster.add(make_component())
        await controller.reconcile("comp1", "test-ns")
        cluster.reset_writes()

        await controller.reconcile("comp1", "test-ns")

        assert cluster.writes == []

    @pytest.mark.asyncio
    async def test_invalid_authorino_label(self, cluster, controller, settings, make_component):
        """A malformed AUTHORINO_LABEL fails the AuthConfig but still writes the policy."""
        settings.authorino_label = "not-a-pair"
        cluster.add(make_component())

        with pytest.raises(InvalidConfigurationError, match="key=value"):
            await controller.reconcile("comp1", "test-ns")

        assert cluster.lookup(AUTH_CONFIG, "comp1", "test-ns") is None
        assert cluster.lookup(AUTHORIZATION_POLICY, "comp1", "test-ns") is not None

    @pytest.mark.asyncio
    async def test_deletion_needs_no_cleanup(self, cluster, controller, make_component):
        """Derived resources are garbage collected through ownerReferences."""
        component = make_component()
        component["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
        component["metadata"]["finalizers"] = ["other.io/finalizer"]
        cluster.add(component)

        await controller.reconcile("comp1", "test-ns")

        assert cluster.writes == []

    def test_controller_name(self, controller):
        assert controller.name == "authorization-component"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
