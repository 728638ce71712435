"""Tests for the layered configuration loader."""

import pytest

from i18nkit.configuration import I18nKitConfig, load_config, validate_provider_settings
from i18nkit.errors import ConfigurationError, ProviderConfigurationError


class TestLoadConfig:
    """Merging defaults, YAML files and the environment."""

    def test_defaults(self, tmp_path):
        """Without any file the built-in defaults apply."""
        config = load_config(tmp_path, environ={})
        assert config.framework == "react"
        assert config.react.library == "react-i18next"
        assert config.locale.source == "zh-CN"
        assert config.locale.target == "en-US"
        assert config.concurrency.id_generation == 5
        assert config.root_dir == tmp_path.resolve()

    def test_local_yaml_file(self, tmp_path):
        """``i18nkit.yaml`` in the project directory is picked up."""
        (tmp_path / "i18nkit.yaml").write_text(
            "framework: vue\nvue:\n  library: vue-i18next\n  namespace: common\nbatch_size: 5\n",
            encoding="utf-8",
        )
        config = load_config(tmp_path, environ={})
        assert config.framework == "vue"
        assert config.library_name == "vue-i18next"
        assert config.namespace == "common"
        assert config.batch_size == 5

    def test_environment_overrides_yaml(self, tmp_path):
        """Environment variables win over file values."""
        (tmp_path / "i18nkit.yaml").write_text("locale:\n  target: ja-JP\n", encoding="utf-8")
        config = load_config(tmp_path, environ={"I18NKIT_TARGET_LOCALE": "ko-KR"})
        assert config.locale.target == "ko-KR"

    def test_dotenv_is_read(self, tmp_path):
        """Values in ``.env`` reach the provider environment."""
        (tmp_path / ".env").write_text("OPENAI_API_KEY=from-dotenv\nLLM_PROVIDER=azure\n", encoding="utf-8")
        config = load_config(tmp_path, environ={})
        assert config.environment["OPENAI_API_KEY"] == "from-dotenv"
        assert config.provider == "azure_openai"

    def test_explicit_overrides_win(self, tmp_path):
        """Command line overrides are applied last; ``None`` is ignored."""
        config = load_config(tmp_path, overrides={"provider": "mock", "framework": None}, environ={})
        assert config.provider == "echo"
        assert config.framework == "react"

    def test_explicit_config_file_must_exist(self, tmp_path):
        """A missing ``--config`` file is an error."""
        with pytest.raises(ConfigurationError):
            load_config(tmp_path, config_path=tmp_path / "missing.yaml", environ={})

    def test_invalid_yaml(self, tmp_path):
        """Broken YAML is reported as a configuration error."""
        (tmp_path / "i18nkit.yaml").write_text("framework: [react\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(tmp_path, environ={})

    def test_validation_errors_are_listed(self, tmp_path):
        """Invalid values produce a bullet list naming the option."""
        (tmp_path / "i18nkit.yaml").write_text("framework: angular\nbatch_size: 0\n", encoding="utf-8")
        with pytest.raises(ConfigurationError) as info:
            load_config(tmp_path, environ={})
        message = str(info.value)
        assert "- framework" in message
        assert "- batch_size" in message

    def test_unknown_option_is_rejected(self, tmp_path):
        """Typos in option names are not silently ignored."""
        (tmp_path / "i18nkit.yaml").write_text("pathz:\n  locale: x\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(tmp_path, environ={})


class TestPaths:
    """Path resolution against the project root."""

    def test_locale_dirs(self, tmp_path):
        """Relative paths resolve against ``root_dir``."""
        config = I18nKitConfig(root_dir=tmp_path)
        assert config.locale_dir() == (tmp_path / "src/locales").resolve()
        assert config.locale_dir(custom=True) == (tmp_path / "src/locales/custom").resolve()


class TestProviderSettings:
    """Provider credential checks."""

    def test_openai_requires_key(self):
        """OpenAI needs an API key."""
        with pytest.raises(ProviderConfigurationError):
            validate_provider_settings(I18nKitConfig(provider="openai"))

    def test_azure_lists_missing_variables(self):
        """Every missing Azure variable is named."""
        config = I18nKitConfig(provider="azure_openai", environment={"AZURE_OPENAI_API_KEY": "k"})
        with pytest.raises(ProviderConfigurationError) as info:
            validate_provider_settings(config)
        assert "AZURE_OPENAI_ENDPOINT" in str(info.value)

    def test_dify_needs_one_endpoint(self):
        """Dify needs at least one url/key pair."""
        config = I18nKitConfig(provider="dify", dify={"translation": {"url": "https://x", "api_key": "k"}})
        validate_provider_settings(config)

    def test_echo_needs_nothing(self):
        """The offline provider is always usable."""
        validate_provider_settings(I18nKitConfig(provider="echo"))
