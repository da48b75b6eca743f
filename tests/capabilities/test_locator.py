"""
Unit tests for exported service lookup.
"""

import pytest

pytest.importorskip("kubernetes")

from fake_cluster import api_error
from platform_controller.errors import CollaboratorNotYetAvailableError
from platform_controller.services.capabilities.routing.locator import ExportedServiceLocator

SELECTOR = {"routing.opendatahub.io/exported": "true", "app": "comp1"}


@pytest.mark.unit
@pytest.mark.kubernetes
class TestExportedServiceLocator:
    """Test ExportedServiceLocator.locate."""

    @pytest.mark.asyncio
    async def test_finds_matching_services(self, cluster, settings, make_component, make_service):
        """Services in the target namespace matching the selector are returned."""
        cluster.add(make_service(name="svc-a"))
        cluster.add(make_service(name="svc-b", owner="other"))
        cluster.add(make_service(name="svc-c", namespace="elsewhere"))

        services = await ExportedServiceLocator(cluster, settings).locate(make_component(), SELECTOR)

        assert [s["metadata"]["name"] for s in services] == ["svc-a"]

    @pytest.mark.asyncio
    async def test_no_services_after_retries(self, cluster, settings, make_component):
        """An empty result is retried and then reported as not yet available."""
        calls = []
        original_list = cluster.list

        async def counting_list(*args, **kwargs):
            calls.append(args)
            return await original_list(*args, **kwargs)

        cluster.list = counting_list

        with pytest.raises(CollaboratorNotYetAvailableError) as exc_info:
            await ExportedServiceLocator(cluster, settings).locate(make_component(), SELECTOR)

        assert "no exported services found for target test-ns/comp1" in str(exc_info.value)
        assert len(calls) == settings.collaborator_retry_attempts

    @pytest.mark.asyncio
    async def test_services_appearing_during_retry(self, cluster, settings, make_component, make_service):
        """A Service created between attempts is picked up."""
        original_list = cluster.list
        attempts = []

        async def late_list(*args, **kwargs):
            attempts.append(1)
            if len(attempts) == 2:
                cluster.add(make_service())
            return await original_list(*args, **kwargs)

        cluster.list = late_list

        services = await ExportedServiceLocator(cluster, settings).locate(make_component(), SELECTOR)

        assert len(services) == 1
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_api_errors_are_not_retried(self, cluster, settings, make_component):
        """Listing failures surface immediately."""
        cluster.fail_on("list", "Service", api_error(403, "Forbidden"))

        with pytest.raises(Exception) as exc_info:
            await ExportedServiceLocator(cluster, settings).locate(make_component(), SELECTOR)

        assert exc_info.value.status == 403


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
