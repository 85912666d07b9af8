import pytest

from shared.helper.HelperConfig import HelperConfig


class TestHelperConfig:
    @pytest.fixture
    def config(self, logger):
        return HelperConfig(logger=logger)

    def test_string_default_and_required(self, config, monkeypatch):
        monkeypatch.delenv("SOME_UNSET_KEY", raising=False)
        assert config.get_string_val("SOME_UNSET_KEY", default="x") == "x"
        with pytest.raises(ValueError):
            config.get_string_val("SOME_UNSET_KEY")

    def test_blank_value_counts_as_unset(self, config, monkeypatch):
        monkeypatch.setenv("BLANK_KEY", "   ")
        assert config.get_string_val("blank_key", default="fallback") == "fallback"

    def test_number_parsing(self, config, monkeypatch):
        monkeypatch.setenv("N_INT", "42")
        monkeypatch.setenv("N_FLOAT", "0.25")
        monkeypatch.setenv("N_BAD", "abc")
        assert config.get_number_val("N_INT") == 42
        assert config.get_number_val("N_FLOAT") == 0.25
        with pytest.raises(ValueError):
            config.get_number_val("N_BAD")

    def test_bool_parsing(self, config, monkeypatch):
        monkeypatch.setenv("FLAG_ON", "Yes")
        monkeypatch.setenv("FLAG_OFF", "false")
        assert config.get_bool_val("FLAG_ON") is True
        assert config.get_bool_val("FLAG_OFF") is False
        monkeypatch.setenv("FLAG_BAD", "maybe")
        with pytest.raises(ValueError):
            config.get_bool_val("FLAG_BAD")
        assert config.get_bool_val("FLAG_UNSET", default=True) is True

    def test_list_parsing(self, config, monkeypatch):
        monkeypatch.setenv("EXTS", "[md, txt ,]")
        assert config.get_list_val("EXTS") == ["md", "txt"]
        monkeypatch.setenv("EXTS", "md,txt")
        with pytest.raises(ValueError):
            config.get_list_val("EXTS")

    def test_values_are_reread(self, config, monkeypatch):
        monkeypatch.setenv("LIVE_KEY", "one")
        assert config.get_string_val("LIVE_KEY") == "one"
        monkeypatch.setenv("LIVE_KEY", "two")
        assert config.get_string_val("LIVE_KEY") == "two"
