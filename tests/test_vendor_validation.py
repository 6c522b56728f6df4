from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from vendorsettle.services.cleanup import purge_abandoned_sessions
from vendorsettle.services.session_registry import SettlementSessionRegistry
from vendorsettle.services.settlement import (
    SettlementSession,
    SettlementValidationError,
    parse_commission_rate,
    validate_vendor_input,
)


@pytest.mark.parametrize("raw,expected", [("8.5", Decimal("8.5")), (0, Decimal("0")), (100, Decimal("100")), (" 12 ", Decimal("12"))])
def test_commission_rate_in_range_is_accepted(raw, expected):
    assert parse_commission_rate(raw) == expected


@pytest.mark.parametrize("raw", [None, True, "abc", "", "-0.5", "100.01", "NaN", "Infinity", [5]])
def test_invalid_commission_rate(raw):
    with pytest.raises(SettlementValidationError, match="invalid commission rate"):
        parse_commission_rate(raw)


def test_vendor_name_is_trimmed():
    assert validate_vendor_input("  Amina ", "7") == ("Amina", Decimal("7"))


@pytest.mark.parametrize("name", [None, "", "   "])
def test_vendor_name_is_required(name):
    with pytest.raises(SettlementValidationError, match="vendor name is required"):
        validate_vendor_input(name, "7")


class TestSessionRegistry:
    def test_open_get_and_discard(self):
        registry = SettlementSessionRegistry()
        entry = registry.open(business_id=1, owner_user_id=2, session=SettlementSession([]))
        assert registry.get(entry.session_id) is entry
        assert len(registry) == 1
        assert registry.discard(entry.session_id) is True
        assert registry.discard(entry.session_id) is False
        assert registry.get(entry.session_id) is None

    def test_purge_drops_only_idle_sessions(self):
        registry = SettlementSessionRegistry()
        stale = registry.open(1, 2, SettlementSession([]))
        fresh = registry.open(1, 3, SettlementSession([]))
        stale.touched_at = datetime.utcnow() - timedelta(hours=30)

        assert purge_abandoned_sessions(registry) == 1
        assert registry.get(stale.session_id) is None
        assert registry.get(fresh.session_id) is fresh

    def test_purge_uses_supplied_clock(self):
        registry = SettlementSessionRegistry()
        registry.open(1, 2, SettlementSession([]))
        later = datetime.utcnow() + timedelta(days=2)
        assert registry.purge_expired(timedelta(hours=1), now=later) == 1
        assert len(registry) == 0
