from sqlalchemy.exc import OperationalError

from calcpad import theme
from calcpad.storage import MemoryKeyValueStore


def test_set_theme():
    try:
        theme.set_theme(theme.PALETTES[theme.DARK], page_title="Calcpad test")
    except Exception as e:
        assert False, f"set_theme raised an exception: {e}"


def test_render_css_uses_palette():
    css = theme.render_css(theme.PALETTES[theme.DARK])
    assert "#1E1E1E" in css
    assert "#F5F5F5" not in css


def test_default_theme_when_nothing_saved():
    prefs = theme.ThemePreferences(MemoryKeyValueStore())
    assert prefs.load() == "light"
    assert prefs.colors["background"] == "#F5F5F5"


def test_toggle_persists_and_reloads():
    kv = MemoryKeyValueStore()
    prefs = theme.ThemePreferences(kv)
    prefs.load()
    assert prefs.toggle() == "dark"
    assert kv.get(theme.THEME_KEY) == "dark"

    again = theme.ThemePreferences(kv)
    assert again.load() == "dark"
    assert again.is_dark


def test_invalid_saved_value_falls_back_to_default():
    kv = MemoryKeyValueStore({theme.THEME_KEY: "purple"})
    prefs = theme.ThemePreferences(kv, default="dark")
    assert prefs.load() == "dark"


def test_toggle_survives_storage_failure(monkeypatch):
    kv = MemoryKeyValueStore()

    def broken_set(key, value):
        raise OperationalError("UPDATE", {}, Exception("database is locked"))

    monkeypatch.setattr(kv, "set", broken_set)
    prefs = theme.ThemePreferences(kv)
    assert prefs.toggle() == "dark"
    assert prefs.name == "dark"
