import pytest

from costlens.modules.reporting.domain.exclusions import is_excluded_service


@pytest.mark.parametrize(
    "service",
    ["Tax", "AWS Support (Business)", "Support", "Sales Tax - US", "EnterpriseSupport"],
)
def test_tax_and_support_are_excluded(service):
    assert is_excluded_service(service) is True


@pytest.mark.parametrize(
    "service",
    ["Amazon EC2", "tax", "aws support", "Amazon Simple Storage Service", ""],
)
def test_other_services_are_kept(service):
    assert is_excluded_service(service) is False


def test_custom_markers_replace_defaults():
    assert is_excluded_service("Credits", markers=["Credit"]) is True
    assert is_excluded_service("Tax", markers=["Credit"]) is False


def test_markers_come_from_settings(monkeypatch):
    from costlens.shared.core.config import get_settings

    monkeypatch.setenv("EXCLUDED_SERVICE_MARKERS", '["Refund"]')
    get_settings.cache_clear()

    assert is_excluded_service("Refund - EC2") is True
    assert is_excluded_service("Tax") is False
