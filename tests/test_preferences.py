"""출력 설정 검증, 영속 저장, API 테스트."""

import pytest

from core.exceptions import InvalidPreference
from model.image import ImageFormat
from model.preference import OutputPreferences, PreferenceEntry, parse_aspect_ratio
from service.preference_service import load_preferences, save_preferences


def test_defaults():
    prefs = OutputPreferences()

    assert prefs.to_storage() == {
        "cropAspectRatio": "original",
        "resolution": "original",
        "ppi": "300",
        "outputFormat": "jpg",
    }
    assert prefs.longest_edge is None
    assert prefs.dpi == 300


@pytest.mark.parametrize("value", ["1:0", "wide", "16/9", "-1:2"])
def test_invalid_ratio(value):
    with pytest.raises(InvalidPreference):
        OutputPreferences().updated(crop_aspect_ratio=value)


@pytest.mark.parametrize("changes", [{"resolution": "0"}, {"resolution": "big"}, {"ppi": "x"}, {"output_format": "gif"}, {"colour": "red"}])
def test_invalid_updates(changes):
    with pytest.raises(InvalidPreference):
        OutputPreferences().updated(**changes)


def test_parse_aspect_ratio():
    assert parse_aspect_ratio("original") is None
    assert parse_aspect_ratio("16:9") == pytest.approx(16 / 9)


def test_save_then_load(session):
    prefs = OutputPreferences().updated(crop_aspect_ratio="4:3", resolution="1280", output_format="png")

    save_preferences(session, prefs)
    loaded = load_preferences(session)

    assert loaded == prefs
    assert loaded.output_format is ImageFormat.PNG


def test_save_writes_only_changed_keys(session):
    base = OutputPreferences()
    save_preferences(session, base)

    changed = save_preferences(session, base.updated(ppi="72"), base)

    assert changed == ["ppi"]
    assert session.get(PreferenceEntry, "ppi").value == "72"


def test_load_ignores_bad_stored_values(session):
    session.add(PreferenceEntry(key="resolution", value="huge"))
    session.add(PreferenceEntry(key="outputFormat", value="webp"))
    session.commit()

    prefs = load_preferences(session)

    assert prefs.resolution == "original"
    assert prefs.output_format is ImageFormat.WEBP


class TestPreferencesApi:
    def test_get_defaults(self, client):
        resp = client.get("/api/preferences/")
        assert resp.status_code == 200
        assert resp.json()["output_format"] == "jpg"

    def test_patch_persists(self, client, session, studio):
        resp = client.patch("/api/preferences/", json={"output_format": "png", "resolution": "1920"})

        assert resp.status_code == 200
        assert resp.json()["resolution"] == "1920"
        assert studio.preferences.output_format is ImageFormat.PNG
        assert load_preferences(session).resolution == "1920"

    def test_patch_invalid(self, client, studio):
        resp = client.patch("/api/preferences/", json={"crop_aspect_ratio": "sideways"})

        assert resp.status_code == 400
        assert resp.json()["error_code"] == "INVALID_PREFERENCE"
        assert studio.preferences.crop_aspect_ratio == "original"
