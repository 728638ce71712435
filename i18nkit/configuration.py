"""Layered configuration loader for i18nkit.

Sources are merged in this order, later layers winning: built-in defaults,
discovered YAML files, a ``.env`` file in the project directory and finally
the process environment.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import ConfigurationError, ProviderConfigurationError
from .prompts import PromptOverrides
from .providers import DifyEndpoint, RetryPolicy

APP_NAME = "i18nkit"
HOME_CONFIG = Path("~/.config/i18nkit/config.yaml")
LOCAL_CONFIG_NAMES = ("i18nkit.yaml", "i18n.config.yaml")

DEFAULT_EXCLUDE = [
    "**/node_modules/**",
    "**/dist/**",
    "**/*.d.ts",
    "**/*.test.*",
    "**/*.spec.*",
    "**/__tests__/**",
]

PROVIDER_SYNONYMS = {
    "azure_open_ai": "azure_openai",
    "azureopenai": "azure_openai",
    "azure": "azure_openai",
    "gpt": "openai",
    "default": "openai",
    "noop": "echo",
    "mock": "echo",
}

# Environment variable -> dotted option path.
ENV_OPTIONS: Dict[str, Tuple[str, ...]] = {
    "LLM_PROVIDER": ("provider",),
    "I18NKIT_PROVIDER": ("provider",),
    "I18NKIT_MODEL": ("model",),
    "I18NKIT_FRAMEWORK": ("framework",),
    "I18NKIT_ROOT_DIR": ("root_dir",),
    "I18NKIT_REACT_LIBRARY": ("react", "library"),
    "I18NKIT_VUE_LIBRARY": ("vue", "library"),
    "I18NKIT_LOCALE_DIR": ("paths", "locale"),
    "I18NKIT_SOURCE_DIR": ("paths", "source"),
    "I18NKIT_T_IMPORT": ("paths", "t_import"),
    "I18NKIT_SOURCE_LOCALE": ("locale", "source"),
    "I18NKIT_TARGET_LOCALE": ("locale", "target"),
    "I18NKIT_BATCH_SIZE": ("batch_size",),
    "I18NKIT_TIMEOUT": ("timeout",),
    "DIFY_ID_GENERATION_URL": ("dify", "id_generation", "url"),
    "DIFY_ID_GENERATION_API_KEY": ("dify", "id_generation", "api_key"),
    "DIFY_TRANSLATION_URL": ("dify", "translation", "url"),
    "DIFY_TRANSLATION_API_KEY": ("dify", "translation", "api_key"),
}


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ReactSettings(_Section):
    library: Literal["react-intl", "react-i18next"] = "react-i18next"
    namespace: Optional[str] = None


class VueSettings(_Section):
    library: Literal["vue-i18n", "vue-i18next"] = "vue-i18n"
    namespace: Optional[str] = None


class PathSettings(_Section):
    locale: str = "src/locales"
    custom_locale: str = "src/locales/custom"
    export_locale: str = "dist/locales"
    source: str = "src"
    t_import: str = "@/plugins/locale"


class LocaleSettings(_Section):
    source: str = "zh-CN"
    target: str = "en-US"


class IdPrefixSettings(_Section):
    anchor: str = "src"
    value: Optional[str] = None


class ConcurrencySettings(_Section):
    id_generation: int = Field(default=5, ge=1)
    translation: int = Field(default=3, ge=1)


class DifyEndpointSettings(_Section):
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = Field(default=60.0, gt=0)

    def endpoint(self) -> Optional[DifyEndpoint]:
        if not self.url or not self.api_key:
            return None
        return DifyEndpoint(url=self.url, api_key=self.api_key, timeout=self.timeout)


class DifySettings(_Section):
    id_generation: DifyEndpointSettings = Field(default_factory=DifyEndpointSettings)
    translation: DifyEndpointSettings = Field(default_factory=DifyEndpointSettings)


class RetrySettings(_Section):
    max_retries: int = Field(default=2, ge=0)
    base_delay: float = Field(default=0.5, ge=0)
    max_delay: float = Field(default=10.0, ge=0)
    factor: float = Field(default=2.0, ge=1)

    def policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            factor=self.factor,
        )


class PromptSettings(_Section):
    id_system: Optional[str] = None
    id_user: Optional[str] = None
    translation_system: Optional[str] = None
    translation_user: Optional[str] = None

    def overrides(self) -> PromptOverrides:
        return PromptOverrides(**self.model_dump())


class I18nKitConfig(_Section):
    """Schema describing all supported configuration options."""

    root_dir: Path = Path(".")
    framework: Literal["react", "vue"] = "react"
    react: ReactSettings = Field(default_factory=ReactSettings)
    vue: VueSettings = Field(default_factory=VueSettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    locale: LocaleSettings = Field(default_factory=LocaleSettings)
    id_prefix: IdPrefixSettings = Field(default_factory=IdPrefixSettings)
    dictionary: Optional[Dict[str, str]] = None
    concurrency: ConcurrencySettings = Field(default_factory=ConcurrencySettings)
    batch_size: int = Field(default=20, ge=1)
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    provider: Literal["openai", "azure_openai", "dify", "echo"] = "openai"
    model: Optional[str] = None
    timeout: float = Field(default=60.0, gt=0)
    dify: DifySettings = Field(default_factory=DifySettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    prompts: PromptSettings = Field(default_factory=PromptSettings)
    include_default: bool = False
    environment: Dict[str, str] = Field(default_factory=dict, exclude=True, repr=False)

    @model_validator(mode="before")
    @classmethod
    def _normalise_provider(cls, data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("provider")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower().replace("-", "_")
                data["provider"] = PROVIDER_SYNONYMS.get(normalized, normalized)
            raw_framework = data.get("framework")
            if isinstance(raw_framework, str):
                data["framework"] = raw_framework.strip().lower()
        return data

    def resolve(self, value: str | Path) -> Path:
        """Absolute path for ``value`` relative to ``root_dir``."""

        path = Path(value).expanduser()
        if path.is_absolute():
            return path
        return (self.root_dir / path).resolve()

    def locale_dir(self, custom: bool = False) -> Path:
        return self.resolve(self.paths.custom_locale if custom else self.paths.locale)

    @property
    def library_name(self) -> str:
        return self.vue.library if self.framework == "vue" else self.react.library

    @property
    def namespace(self) -> Optional[str]:
        return self.vue.namespace if self.framework == "vue" else self.react.namespace


def discover_config_files(app_dir: Path, explicit: str | Path | None = None) -> List[Path]:
    """Configuration files to load, lowest precedence first."""

    found: List[Path] = []
    home = HOME_CONFIG.expanduser()
    if home.is_file():
        found.append(home)
    if explicit is not None:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigurationError(f"Configuration file {path} does not exist.")
        found.append(path)
        return found
    for name in LOCAL_CONFIG_NAMES:
        candidate = app_dir / name
        if candidate.is_file():
            found.append(candidate)
    return found


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Configuration file {path} could not be read: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file {path} is not valid YAML: {exc}") from exc
    if parsed is None:
        return {}
    if not isinstance(parsed, Mapping):
        raise ConfigurationError(f"Invalid configuration file {path}: expected a mapping at the root.")
    return dict(parsed)


def merge_layer(target: Dict[str, Any], layer: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``layer`` into ``target`` in place."""

    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merge_layer(current, value)
        else:
            target[key] = dict(value) if isinstance(value, Mapping) else value
    return target


def _env_layer(values: Mapping[str, str]) -> Dict[str, Any]:
    layer: Dict[str, Any] = {}
    for name, path in ENV_OPTIONS.items():
        value = values.get(name)
        if value is None or value == "":
            continue
        node = layer
        for part in path[:-1]:
            node = node.setdefault(part, {})
        node[path[-1]] = value
    return layer


def _format_validation_errors(entries: Sequence[Mapping[str, Any]]) -> str:
    details: List[str] = []
    for entry in entries:
        location = ".".join(str(part) for part in entry.get("loc") or () if part not in {None, ""})
        message = str(entry.get("msg") or "Invalid value")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def load_config(
    app_dir: Path | None = None,
    *,
    config_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> I18nKitConfig:
    """Merge every configuration layer and validate the result."""

    base_dir = (app_dir or Path.cwd()).resolve()
    combined: Dict[str, Any] = {"root_dir": str(base_dir)}
    for path in discover_config_files(base_dir, config_path):
        layer = _read_yaml(path)
        root = layer.get("root_dir")
        if isinstance(root, str) and not Path(root).expanduser().is_absolute():
            layer["root_dir"] = str((path.parent / root).resolve())
        merge_layer(combined, layer)

    environment: Dict[str, str] = {}
    dotenv_path = base_dir / ".env"
    if dotenv_path.exists():
        environment.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})
    process = os.environ if environ is None else environ
    environment.update({k: v for k, v in process.items() if isinstance(v, str)})

    merge_layer(combined, _env_layer(environment))
    if overrides:
        merge_layer(combined, {key: value for key, value in overrides.items() if value is not None})
    combined["environment"] = environment

    try:
        return I18nKitConfig.model_validate(combined)
    except ValidationError as exc:
        raise ConfigurationError(_format_validation_errors(exc.errors())) from exc


def validate_provider_settings(settings: I18nKitConfig) -> None:
    """Check that the selected provider has what it needs to make requests."""

    env = settings.environment
    errors: List[str] = []
    if settings.provider == "openai":
        if not env.get("OPENAI_API_KEY"):
            errors.append("OPENAI_API_KEY is required when the provider is 'openai'.")
    elif settings.provider == "azure_openai":
        missing = [
            name
            for name in (
                "AZURE_OPENAI_API_KEY",
                "AZURE_OPENAI_ENDPOINT",
                "AZURE_OPENAI_API_VERSION",
                "AZURE_OPENAI_DEPLOYMENT_NAME",
            )
            if not env.get(name)
        ]
        if missing:
            errors.append(
                "The following Azure OpenAI settings must be provided when the "
                f"provider is 'azure_openai': {', '.join(missing)}."
            )
    elif settings.provider == "dify":
        if settings.dify.id_generation.endpoint() is None and settings.dify.translation.endpoint() is None:
            errors.append("dify.id_generation or dify.translation needs both url and api_key.")

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise ProviderConfigurationError("Configuration validation errors detected:\n" + bullet_list)
