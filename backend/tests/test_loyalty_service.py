from decimal import Decimal

from retail_erp.services import loyalty_service


def test_points_floor_at_default_ratio(app):
    assert loyalty_service.points_for_amount(Decimal("252.00")) == 25
    assert loyalty_service.points_for_amount(Decimal("9.99")) == 0


def test_zero_ratio_from_config_disables_points(app, monkeypatch):
    monkeypatch.setitem(app.config, "POINTS_PER_CURRENCY_UNIT", 0)

    assert loyalty_service.points_per_currency_unit() == 0
    assert loyalty_service.points_for_amount(Decimal("252.00")) == 0


def test_unset_config_falls_back_to_defaults(app, monkeypatch):
    monkeypatch.setitem(app.config, "POINTS_PER_CURRENCY_UNIT", None)
    monkeypatch.setitem(app.config, "POINTS_EXPIRY_DAYS", "")

    assert loyalty_service.points_per_currency_unit() == 10
    assert loyalty_service.points_expiry_days() == 365


def test_configured_ratio_is_used(app, monkeypatch):
    monkeypatch.setitem(app.config, "POINTS_PER_CURRENCY_UNIT", "20")
    assert loyalty_service.points_for_amount(Decimal("252.00")) == 12
