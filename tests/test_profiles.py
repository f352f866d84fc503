"""Tests for saved plugin profiles."""

import json

import pytest

from bulk_installer.core.errors import InvalidProfileJson, ProfileError, ProfileNotFound
from bulk_installer.core.profiles import Profile, ProfileManager

PLUGINS = [
    {"slug": "akismet", "name": "Akismet Anti-Spam", "version": "5.3"},
    {"slug": "hello-dolly", "name": "Hello Dolly", "version": "1.7.2"},
]


@pytest.fixture
def profiles(test_config):
    return ProfileManager(test_config)


class TestSaveProfile:
    """Tests for saving and reading profiles."""

    def test_save_and_get(self, profiles):
        """Test a saved profile can be read back."""
        profile_id = profiles.save_profile("blog", PLUGINS)

        profile = profiles.get_profile(profile_id)

        assert profile.name == "blog"
        assert profile.plugins == PLUGINS
        assert profile.created_at.endswith("Z")

    def test_ids_increment(self, profiles):
        """Test ids continue from the highest existing id."""
        assert profiles.save_profile("one", []) == 1
        assert profiles.save_profile("two", []) == 2
        profiles.delete_profile(1)
        assert profiles.save_profile("three", []) == 3

    def test_persists(self, profiles, test_config):
        """Test profiles survive a new manager instance."""
        profiles.save_profile("blog", PLUGINS)
        assert [p.name for p in ProfileManager(test_config).get_all_profiles()] == ["blog"]

    def test_empty_name_rejected(self, profiles):
        """Test a profile needs a name."""
        with pytest.raises(ProfileError, match="Profile name is required."):
            profiles.save_profile("  ", PLUGINS)

    def test_plugins_must_be_objects(self, profiles):
        """Test plugin entries must be objects."""
        with pytest.raises(ProfileError):
            profiles.save_profile("blog", ["akismet"])

    def test_find_by_name(self, profiles):
        """Test lookup by name."""
        profiles.save_profile("blog", PLUGINS)
        assert profiles.find_by_name("blog").plugins == PLUGINS
        assert profiles.find_by_name("shop") is None

    def test_get_missing(self, profiles):
        """Test reading an unknown id."""
        assert profiles.get_profile(99) is None


class TestDeleteProfile:
    """Tests for deleting profiles."""

    def test_delete(self, profiles):
        """Test the deleted profile is gone and the others stay."""
        first = profiles.save_profile("one", PLUGINS)
        second = profiles.save_profile("two", PLUGINS)

        assert profiles.delete_profile(first) is True

        assert profiles.get_profile(first) is None
        assert [p.id for p in profiles.get_all_profiles()] == [second]

    def test_delete_missing(self, profiles):
        """Test deleting an unknown id."""
        profiles.save_profile("one", PLUGINS)
        assert profiles.delete_profile(42) is False
        assert len(profiles.get_all_profiles()) == 1


class TestExportImport:
    """Tests for JSON export and import."""

    def test_export(self, profiles):
        """Test the exported JSON holds the whole profile."""
        profile_id = profiles.save_profile("blog", PLUGINS)

        data = json.loads(profiles.export_profile(profile_id))

        assert data["id"] == profile_id
        assert data["name"] == "blog"
        assert data["plugins"] == PLUGINS

    def test_export_missing(self, profiles):
        """Test exporting an unknown id."""
        with pytest.raises(ProfileNotFound):
            profiles.export_profile(7)

    def test_import_gets_new_id(self, profiles):
        """Test an imported profile keeps its content under a fresh id."""
        profile_id = profiles.save_profile("blog", PLUGINS)
        exported = profiles.export_profile(profile_id)

        new_id = profiles.import_profile(exported)

        assert new_id != profile_id
        imported = profiles.get_profile(new_id)
        assert imported.name == "blog"
        assert imported.plugins == PLUGINS

    @pytest.mark.parametrize("text", ["not json", "[1, 2]", "null"])
    def test_import_invalid_json(self, profiles, text):
        """Test text that is not a JSON object."""
        with pytest.raises(InvalidProfileJson):
            profiles.import_profile(text)

    @pytest.mark.parametrize(
        "data",
        [{"plugins": []}, {"name": "", "plugins": []}, {"name": "blog"}, {"name": "blog", "plugins": {}}],
    )
    def test_import_invalid_profile(self, profiles, data):
        """Test objects missing a name or a plugins list."""
        with pytest.raises(ProfileError, match='"name" string and a "plugins" array'):
            profiles.import_profile(json.dumps(data))


class TestProfileModel:
    """Tests for the Profile dataclass."""

    def test_from_dict_drops_non_object_plugins(self):
        """Test stray plugin entries are ignored."""
        profile = Profile.from_dict({"id": "3", "name": "x", "plugins": [{"slug": "a"}, "b"]})

        assert profile.id == 3
        assert profile.plugins == [{"slug": "a"}]
