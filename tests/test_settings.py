import pytest

from titanprobe.config import settings


def test_defaults_are_valid():
    settings.validate_settings()


def test_slot_dv():
    assert settings.max_slot_dv(3e7, 86400.0, 50000.0) == pytest.approx(5.184e7)


def test_titan_period_positive():
    assert settings.titan_orbital_period() > 0.0


def test_bad_value_is_caught(monkeypatch):
    monkeypatch.setattr(settings, "DT", 0.0)
    with pytest.raises(ValueError):
        settings.validate_settings()


@pytest.mark.parametrize("name, value", [("RELATIVE_TOLERANCE", -1e-9), ("MAX_ADAPTIVE_STEPS", 0)])
def test_bad_integrator_budget_is_caught(monkeypatch, name, value):
    monkeypatch.setattr(settings, name, value)
    with pytest.raises(ValueError):
        settings.validate_settings()
