from typing import Iterable, Optional

from costlens.shared.core.config import get_settings


def is_excluded_service(service: str, markers: Optional[Iterable[str]] = None) -> bool:
    """
    True when the service is a tax or support-plan line item.

    Plain case-sensitive substring match ("AWS Support (Business)" and "Tax" both
    match). Used by every forecast path that reads actuals so the trend and the
    chart history agree on what counts as usage.
    """
    if markers is None:
        markers = get_settings().EXCLUDED_SERVICE_MARKERS
    return any(marker in service for marker in markers)
