"""Tests for locale file handling."""

import pytest
from conftest import read_json, write_json

from i18nkit.errors import LocaleFileError
from i18nkit.locale_files import (
    LocaleFileManager,
    find_conflicting_keys,
    find_duplicate_keys,
    flatten,
    is_nested,
    is_valid_translation,
    unflatten,
)


class TestHelpers:
    """Flattening and validity checks."""

    def test_flatten_and_unflatten(self):
        """Nested objects collapse to dotted keys and back."""
        nested = {"page": {"title": "标题", "form": {"ok": "确定"}}, "top": "顶"}
        flat = flatten(nested)
        assert flat == {"page.title": "标题", "page.form.ok": "确定", "top": "顶"}
        assert unflatten(flat) == nested

    def test_unflatten_keeps_conflicting_leaf(self):
        """A key below an existing plain value stays dotted."""
        assert unflatten({"a": "x", "a.b": "y"}) == {"a": "x", "a.b": "y"}

    def test_is_nested(self):
        """Only objects with object values count as nested."""
        assert is_nested({"a": {"b": "c"}})
        assert not is_nested({"a.b": "c"})

    def test_find_duplicate_keys(self):
        """Repeated keys in the raw text are reported."""
        assert find_duplicate_keys('{"a": "1", "b": "2", "a": "3"}') == ["a"]

    def test_find_conflicting_keys(self):
        """Keys with different values in both mappings are conflicts."""
        first = {"a": "1", "b": "2", "n": {"x": "1"}}
        second = {"a": "1", "b": "3", "n": {"x": "2"}, "c": "4"}
        assert find_conflicting_keys(first, second) == ["b", "n.x"]

    @pytest.mark.parametrize(
        "value, expected",
        [("Hello", True), ("你好", True), ("", False), ("   ", False), ("...", False), ("{}", False), (None, False)],
    )
    def test_is_valid_translation(self, value, expected):
        """Blank and punctuation-only values are not translations."""
        assert is_valid_translation(value) is expected


class TestLocaleFileManager:
    """Reading and updating locale files."""

    def test_missing_file_is_empty(self, make_config):
        """A locale that does not exist yet loads as an empty map."""
        manager = LocaleFileManager(make_config())
        assert manager.load_locale("zh-CN") == {}

    def test_nested_file_is_flattened(self, make_config, project):
        """Nested locale files are read with dotted keys."""
        write_json(project / "src/locales/zh-CN.json", {"page": {"title": "标题"}})
        manager = LocaleFileManager(make_config())
        assert manager.load_locale("zh-CN") == {"page.title": "标题"}

    def test_strict_load_rejects_bad_json(self, make_config, project):
        """Malformed JSON stops strict reads."""
        (project / "src/locales/zh-CN.json").write_text("{oops", encoding="utf-8")
        manager = LocaleFileManager(make_config())
        with pytest.raises(LocaleFileError) as info:
            manager.load_locale("zh-CN", strict=True)
        assert "Fix the JSON" in str(info.value)

    def test_lenient_load_warns(self, make_config, project, reporter):
        """Malformed JSON is treated as empty outside strict reads."""
        (project / "src/locales/zh-CN.json").write_text("{oops", encoding="utf-8")
        manager = LocaleFileManager(make_config(), reporter=reporter)
        assert manager.load_locale("zh-CN") == {}
        assert reporter.warnings

    def test_update_appends_and_keeps_flat_layout(self, make_config, project):
        """New keys are added after the existing ones."""
        path = write_json(project / "src/locales/zh-CN.json", {"a": "甲"})
        manager = LocaleFileManager(make_config())
        added, updated = manager.update_locale("zh-CN", {"b": "乙", "a": "甲"})
        assert (added, updated) == (1, 0)
        assert list(read_json(path)) == ["a", "b"]

    def test_update_preserves_nested_layout(self, make_config, project):
        """Nested files stay nested after an update."""
        path = write_json(project / "src/locales/en-US.json", {"page": {"title": "Title"}})
        manager = LocaleFileManager(make_config())
        manager.update_locale("en-US", {"page.subtitle": "Sub"})
        assert read_json(path) == {"page": {"title": "Title", "subtitle": "Sub"}}

    def test_update_without_overwrite_keeps_values(self, make_config, project):
        """Existing translations survive a non-overwriting update."""
        path = write_json(project / "src/locales/en-US.json", {"a": "A"})
        manager = LocaleFileManager(make_config())
        assert manager.update_locale("en-US", {"a": "", "b": ""}, overwrite=False) == (1, 0)
        assert read_json(path) == {"a": "A", "b": ""}

    def test_update_aborts_on_bad_json(self, make_config, project):
        """A malformed locale file is never overwritten."""
        path = project / "src/locales/zh-CN.json"
        path.write_text('{"a": ', encoding="utf-8")
        manager = LocaleFileManager(make_config())
        with pytest.raises(LocaleFileError):
            manager.update_locale("zh-CN", {"b": "乙"})
        assert path.read_text(encoding="utf-8") == '{"a": '

    def test_new_file_follows_source_layout(self, make_config, project):
        """A new target file copies the nesting style of the source locale."""
        write_json(project / "src/locales/zh-CN.json", {"page": {"title": "标题"}})
        manager = LocaleFileManager(make_config())
        manager.update_locale("en-US", {"page.title": ""})
        assert read_json(project / "src/locales/en-US.json") == {"page": {"title": ""}}

    def test_custom_directory(self, make_config, project):
        """The custom manager reads the custom locale directory."""
        write_json(project / "src/locales/custom/zh-CN.json", {"x": "叉"})
        manager = LocaleFileManager(make_config(), custom=True)
        assert manager.load_locale("zh-CN") == {"x": "叉"}

    def test_known_texts_first_id_wins(self, make_config, project):
        """Text lookups return the first identifier for a text."""
        write_json(project / "src/locales/zh-CN.json", {"a": "同", "b": "同"})
        manager = LocaleFileManager(make_config())
        assert manager.known_texts() == {"同": "a"}

    def test_load_messages(self, make_config, project):
        """Both configured locales are loaded together."""
        write_json(project / "src/locales/zh-CN.json", {"a": "甲"})
        manager = LocaleFileManager(make_config())
        assert manager.load_messages() == {"zh-CN": {"a": "甲"}, "en-US": {}}
