from datetime import datetime, timedelta

from vendorsettle.core.config import settings
from vendorsettle.services.session_registry import SettlementSessionRegistry, settlement_sessions


def purge_abandoned_sessions(
    registry: SettlementSessionRegistry = settlement_sessions,
    now: datetime | None = None,
) -> int:
    return registry.purge_expired(timedelta(hours=settings.settlement_session_ttl_hours), now=now)
