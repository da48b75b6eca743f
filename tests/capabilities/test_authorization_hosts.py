"""
Unit tests for protected resource host extraction.
"""

import pytest

pytest.importorskip("kubernetes")

from platform_controller.errors import InvalidConfigurationError
from platform_controller.services.capabilities.authorization.hosts import (
    UNKNOWN_HOST,
    annotation_host_extractor,
    path_expression_extractor,
    unified_host_extractor,
)

PUBLIC_ADDRESSES = "routing.opendatahub.io/public-addresses"
EXTERNAL_ADDRESSES = "routing.opendatahub.io/external-addresses"


@pytest.mark.unit
class TestAnnotationHostExtractor:
    """Test hosts read from the routing address annotations."""

    def test_reads_both_annotations(self, make_component):
        """External addresses come first, then public ones."""
        target = make_component(annotations={
            PUBLIC_ADDRESSES: "svc.ns;svc.ns.svc",
            EXTERNAL_ADDRESSES: "svc.apps.example.com",
        })
        assert annotation_host_extractor()(target) == ["svc.apps.example.com", "svc.ns", "svc.ns.svc"]

    def test_no_annotations(self, make_component):
        assert annotation_host_extractor()(make_component()) == []

    def test_empty_entries_are_skipped(self, make_component):
        target = make_component(annotations={PUBLIC_ADDRESSES: "a;;b;"})
        assert annotation_host_extractor()(target) == ["a", "b"]


@pytest.mark.unit
class TestPathExpressionExtractor:
    """Test hosts read from configured field paths."""

    def test_string_field(self, make_component):
        target = make_component(status={"url": "https://model.apps.example.com"})
        assert path_expression_extractor(["status.url"])(target) == ["https://model.apps.example.com"]

    def test_list_field(self, make_component):
        target = make_component(status={"hosts": ["a.example.com", "b.example.com"]})
        assert path_expression_extractor(["status.hosts"])(target) == ["a.example.com", "b.example.com"]

    def test_missing_path_is_skipped(self, make_component):
        """Paths that are not populated yet are not an error."""
        assert path_expression_extractor(["status.url"])(make_component()) == []

    def test_unexpected_type_is_an_error(self, make_component):
        """A path pointing at something other than strings is a configuration error."""
        target = make_component(status={"url": {"host": "a"}})
        with pytest.raises(InvalidConfigurationError, match="neither string nor slice of strings"):
            path_expression_extractor(["status.url"])(target)


@pytest.mark.unit
class TestUnifiedHostExtractor:
    """Test combining extractors."""

    def test_urls_become_hosts_without_duplicates(self, make_component):
        """Schemes and paths are dropped and repeated hosts listed once."""
        target = make_component(
            annotations={EXTERNAL_ADDRESSES: "model.apps.example.com"},
            status={"url": "https://model.apps.example.com/v1/models"},
        )
        extractor = unified_host_extractor(
            path_expression_extractor(["status.url"]),
            annotation_host_extractor(),
        )
        assert extractor(target) == ["model.apps.example.com"]

    def test_fallback_host(self, make_component):
        """An AuthConfig always gets at least one host."""
        extractor = unified_host_extractor(annotation_host_extractor())
        assert extractor(make_component()) == [UNKNOWN_HOST]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
