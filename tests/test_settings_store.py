"""Tests for persisting per-pair settings."""
from fxvol.core.models import AppSettings, CurrencyPairEntry
from fxvol.core.settings_store import SettingsStore


def test_save_then_load(tmp_path):
    store = SettingsStore(str(tmp_path / "nested" / "settings.yaml"))
    settings = AppSettings(currency_pairs=[
        CurrencyPairEntry("EURSEK", atm_source="CMPN", smile_source="BGN", is_live=True),
        CurrencyPairEntry("CNHSEK", atm_source="BGN", smile_source="BGNT", is_live=False),
    ])

    assert store.save(settings)
    assert settings.last_saved is not None

    loaded = store.load()
    assert loaded.currency_pairs == settings.currency_pairs
    assert loaded.last_saved == settings.last_saved.replace(microsecond=0)


def test_missing_file_gives_empty_settings(tmp_path):
    settings = SettingsStore(str(tmp_path / "absent.yaml")).load()

    assert settings.currency_pairs == []
    assert settings.last_saved is None


def test_corrupt_file_gives_empty_settings(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("currency_pairs:\n  - atm_source: BGN\n")

    assert SettingsStore(str(path)).load().currency_pairs == []


def test_missing_sources_fall_back_to_bgn(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("currency_pairs:\n  - currency_pair: eursek\n")

    entry = SettingsStore(str(path)).load().currency_pairs[0]

    assert entry == CurrencyPairEntry("EURSEK", "BGN", "BGN", True)


def test_save_failure_returns_false(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")

    assert not SettingsStore(str(blocker / "settings.yaml")).save(AppSettings())
