"""
Unit tests for settings and group configuration.
"""

import json

import pytest
from pydantic import ValidationError

from fsis.core.config import GroupConfig, Settings, get_settings, load_groups_file
from fsis.core.exceptions import ConfigurationError


class TestGroupConfig:
    def test_wiki_style_entry(self):
        group = GroupConfig.model_validate({
            "path": "/srv/img",
            "right": "fsis-view",
            "fallback": "/srv/missing.png",
            "mimetypes": ["image/PNG", " image/jpeg "],
        })

        assert group.base_path == "/srv/img"
        assert group.required_permission == "fsis-view"
        assert group.fallback_path == "/srv/missing.png"
        assert group.allowed_mime_types == {"image/png", "image/jpeg"}

    def test_defaults(self):
        group = GroupConfig(path="/srv/img")
        assert group.required_permission is None
        assert group.fallback_path is None
        assert group.allowed_mime_types == frozenset()

    def test_single_mimetype_string(self):
        assert GroupConfig(path="/srv", mimetypes="image/png").allowed_mime_types == {"image/png"}

    def test_empty_right_and_fallback_mean_none(self):
        group = GroupConfig(path="/srv", right="", fallback="")
        assert group.required_permission is None
        assert group.fallback_path is None

    @pytest.mark.parametrize("path", ["", "relative/dir", "./img"])
    def test_relative_path_rejected(self, path):
        with pytest.raises(ValidationError):
            GroupConfig(path=path)

    def test_relative_fallback_rejected(self):
        with pytest.raises(ValidationError):
            GroupConfig(path="/srv", fallback="missing.png")

    def test_unknown_keys_rejected(self):
        with pytest.raises(ValidationError):
            GroupConfig.model_validate({"path": "/srv", "mimetype": ["image/png"]})

    def test_immutable(self):
        group = GroupConfig(path="/srv")
        with pytest.raises(ValidationError):
            group.path = "/etc"


class TestSettings:
    def test_groups_from_environment(self, monkeypatch):
        monkeypatch.setenv(
            "FSIS_GROUPS",
            json.dumps({"photos": {"path": "/srv/photos", "mimetypes": ["image/png"]}}),
        )
        settings = Settings(_env_file=None)
        assert settings.groups["photos"].allowed_mime_types == {"image/png"}

    def test_groups_file_merged_with_inline_groups(self, tmp_path):
        groups_file = tmp_path / "groups.json"
        groups_file.write_text(json.dumps({
            "photos": {"path": "/srv/from-file"},
            "docs": {"path": "/srv/docs"},
        }))

        settings = Settings(
            _env_file=None,
            fsis_groups_file=str(groups_file),
            fsis_groups={"photos": {"path": "/srv/inline"}},
        )

        assert settings.groups["photos"].base_path == "/srv/inline"
        assert settings.groups["docs"].base_path == "/srv/docs"

    def test_role_rights_accept_comma_lists(self):
        settings = Settings(_env_file=None, role_rights={"staff": "a, b", "*": ["c"]})
        assert settings.role_rights == {"staff": ["a", "b"], "*": ["c"]}

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.cache_max_age == 3600
        assert settings.default_language == "en"


class TestGetSettings:
    @pytest.fixture(autouse=True)
    def clear_cache(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_relative_group_path_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("FSIS_GROUPS", json.dumps({"photos": {"path": "relative/img"}}))

        with pytest.raises(ConfigurationError) as excinfo:
            get_settings()

        assert excinfo.value.message == "Invalid settings"
        assert excinfo.value.details["errors"]

    def test_malformed_group_json_raises_configuration_error(self, monkeypatch):
        monkeypatch.setenv("FSIS_GROUPS", "{not json")

        with pytest.raises(ConfigurationError):
            get_settings()

    def test_valid_settings_are_cached(self, monkeypatch):
        monkeypatch.setenv("FSIS_GROUPS", json.dumps({"photos": {"path": "/srv/photos"}}))

        assert get_settings() is get_settings()
        assert get_settings().groups["photos"].base_path == "/srv/photos"


class TestLoadGroupsFile:
    def test_no_file(self):
        assert load_groups_file(None) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_groups_file(str(tmp_path / "nope.json"))

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "groups.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_groups_file(str(path))

    def test_not_an_object(self, tmp_path):
        path = tmp_path / "groups.json"
        path.write_text("[]")
        with pytest.raises(ConfigurationError):
            load_groups_file(str(path))

    def test_invalid_group(self, tmp_path):
        path = tmp_path / "groups.json"
        path.write_text(json.dumps({"bad": {"path": "relative"}}))
        with pytest.raises(ConfigurationError) as excinfo:
            load_groups_file(str(path))
        assert "bad" in excinfo.value.message
