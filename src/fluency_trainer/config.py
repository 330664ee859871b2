"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
            flattened['ws_connections_per_minute'] = data['server'].get('ws_connections_per_minute')
        if 'storage' in data:
            flattened['data_dir'] = data['storage'].get('data_dir')
            flattened['progress_record'] = data['storage'].get('progress_record')
        if 'prompts' in data:
            flattened['prompt_selection'] = data['prompts'].get('selection')
        for mode, values in (data.get('modes') or {}).items():
            for key, value in (values or {}).items():
                flattened[f"{mode}_{key}"] = value

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    env: str = Field(default="development")
    allowed_origins: str = Field(default="http://localhost:3000,http://127.0.0.1:3000")
    ws_connections_per_minute: int = Field(default=10)

    # Storage
    data_dir: Path | None = Field(default=None)
    progress_record: str = Field(default="progress")

    # Prompts
    prompt_selection: Literal["shuffled", "random"] = Field(default="shuffled")

    # Fluency mode: listen, repeat, next
    fluency_target: int = Field(default=8)
    fluency_settle_seconds: float = Field(default=0.4)

    # Reaction mode: answer a question before the countdown runs out
    reaction_target: int = Field(default=6)
    reaction_question_seconds: float = Field(default=2.5)
    reaction_response_seconds: float = Field(default=5.0)

    # Speak-60 mode (anti-block): talk about a topic for a minute
    speak60_settle_seconds: float = Field(default=0.5)
    speak60_response_seconds: float = Field(default=60.0)

    # Focus mode: long uninterrupted monologue
    focus_response_seconds: float = Field(default=300.0)
    focus_durations: list[float] = Field(default_factory=lambda: [300.0, 600.0, 900.0])

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    @property
    def resolved_data_dir(self) -> Path:
        d = self.data_dir or self.project_root / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def progress_path(self) -> Path:
        d = self.resolved_data_dir / "progress"
        d.mkdir(parents=True, exist_ok=True)
        return d / f"{self.progress_record}.json"

    @property
    def prompts_dir(self) -> Path:
        return self.project_root / "config" / "prompts"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


def load_prompt_bank(filename: str = "phrases.yaml") -> dict:
    """Load prompt bank from YAML file."""
    prompts_path = _find_project_root() / "config" / "prompts" / filename
    if not prompts_path.exists():
        raise FileNotFoundError(f"Prompt bank not found: {prompts_path}")
    with open(prompts_path, encoding='utf-8') as f:
        data = yaml.safe_load(f)
    return data or {}
