"""Application state and configuration."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from rebasecat.core.base import BaseConfig, BaseState
from rebasecat.core.log import Logger
from rebasecat.core.yaml_settings import YamlWithIncludesSettingsSource
from rebasecat.rebase.context import (
    DEFAULT_ATTEMPTS,
    MAX_ATTEMPTS,
    MIN_ATTEMPTS,
    RebaseState,
)

# Modules reachable from templates in YAML values, for example
# {platformdirs.user_state_dir}, {os.getcwd} or {Path.home}.
# platformdirs functions get the app name, other callables no arguments.
TEMPLATE_NAMESPACE = {
    'os': os,
    'platformdirs': platformdirs,
    'Path': Path,
}


# ============================================================
# CONFIG MODELS (loaded from YAML/env/CLI)
# ============================================================

class GitConfig(BaseConfig):
    """Repository and rebase configuration."""

    workdir: Path = Field(
        default=Path("."),
        description="Path to the git working directory to rebase in",
    )
    source_ref: str | None = Field(
        default=None,
        description="Branch to rebase (its commits are replayed)",
    )
    target_branch: str | None = Field(
        default=None,
        description="Branch to rebase onto (e.g., 'main')",
    )
    max_attempts: int = Field(
        default=DEFAULT_ATTEMPTS,
        description=(
            f"Resolution rounds allowed per run, also used as the "
            f"per-file retry ceiling ({MIN_ATTEMPTS}-{MAX_ATTEMPTS})"
        ),
    )
    run_name: str = Field(
        default="rebase",
        description="Name of this run, used for log directories",
    )


class LLMConfig(BaseConfig):
    """LLM provider and model selection."""

    model: str = Field(
        description=(
            "Model for both agents. Format: 'provider:model' "
            "(e.g., openai:gpt-4o, anthropic:claude-sonnet-4-0)"
        )
    )
    api_key: str | None = Field(
        default=None,
        description=(
            "API key for the provider. If unset the provider reads its "
            "own environment variable (e.g., OPENAI_API_KEY)"
        ),
    )
    base_url: str | None = Field(
        default=None,
        description=(
            "Override API base URL for OpenAI-compatible endpoints "
            "(e.g., http://localhost:8080/v1)"
        ),
    )


class Config(BaseConfig):
    """Application configuration loaded from YAML/env/CLI."""

    logger: Logger = Field(
        default=None,
        description="Logger configuration and runtime instance",
    )
    git: GitConfig = Field(
        default_factory=GitConfig,
        description="Repository and rebase settings",
    )
    llm: LLMConfig = Field(description="LLM provider and model settings")

    log_level: str = Field(
        default="info",
        alias="log-level",
        description=(
            "Console log level: 'trace', 'debug', 'info', "
            "'warn', 'error', 'fatal'"
        ),
    )
    log_root: Path = Field(
        default_factory=(
            lambda: Path(platformdirs.user_state_dir()) / "rebasecat"
        ),
        description=(
            "Root directory for log files "
            "(supports {platformdirs.*} templates)"
        ),
    )

    commands: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Command templates by category (git, ...)",
    )
    prompts: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="Prompt templates for the resolver and verifier",
    )
    agents: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Retries, timeouts and limits per agent",
    )
    tools: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Platform-specific whitelisted agent commands",
    )

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode='after')
    def _setup_logger(self) -> 'Config':
        """Configure the global logger from the loaded settings."""
        from rebasecat.core.log import setup_logger
        from rebasecat.core.yaml_settings import _cleanup_bootstrap_logger

        if self.logger is None:
            self.logger = Logger(level=self.log_level)

        setup_logger(
            log_root=self.log_root,
            run_name=self.git.run_name,
            console=self.logger.console,
            otlp=self.logger.otlp,
            file=self.logger.file,
            logfire=self.logger.logfire,
        )

        # The bootstrap logger has its own processors; dropping it
        # does not touch the one configured above
        _cleanup_bootstrap_logger()

        return self

    def agent_setting(self, agent: str, key: str, default: Any = None) -> Any:
        """Look up one value in the agents section."""
        return self.agents.get(agent, {}).get(key, default)

    def close(self):
        """Close the global logger, then any closeable children."""
        from rebasecat.core.log import logger
        logger.close()
        super().close()


# ============================================================
# RUNTIME STATE
# ============================================================

class GlobalState(BaseState):
    """Runtime state shared by every command."""

    current_command: str | None = Field(
        default=None, description="Subcommand being executed"
    )


class Runtime(BaseModel):
    """All runtime state, grouped by command."""

    global_: GlobalState = Field(
        default_factory=GlobalState,
        alias="global",
        description="State shared by every command",
    )
    rebase: RebaseState | None = Field(
        default=None,
        description="Run context of the most recent rebase run",
    )

    model_config = ConfigDict(populate_by_name=True)


# ============================================================
# STATE (config + runtime combined)
# ============================================================

class State(BaseSettings):
    """Complete application state: configuration plus runtime.

    Loaded from init arguments, YAML files, .env, environment
    variables and the command line, in that priority order.
    """

    config: Config = Field(
        description="Application configuration (from YAML/env/CLI)"
    )
    runtime: Runtime = Field(
        default_factory=Runtime,
        description="Runtime state (mutates during execution)",
    )
    include: list[str] | None = Field(
        default=None,
        description=(
            "Additional YAML files to include and merge. "
            "Use --include on CLI or include: in YAML files."
        ),
    )

    model_config = SettingsConfigDict(
        yaml_file=None,
        env_file=".env",
        env_prefix="REBASECAT_",
        env_nested_delimiter="__",
        cli_parse_args=True,
        cli_implicit_flags=True,
        cli_use_class_docs_for_groups=True,
        arbitrary_types_allowed=True,
        # .env may hold secrets for other tools
        extra='ignore',
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            YamlWithIncludesSettingsSource(settings_cls),
            dotenv_settings,
            env_settings,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def substitute_templates(self) -> "State":
        """Expand {config.*} and {platformdirs.*} templates in place."""
        self._substitute_recursive(self)
        return self

    def _substitute_recursive(self, obj: Any) -> None:
        if isinstance(obj, BaseModel):
            for field_name in obj.__class__.model_fields:
                value = getattr(obj, field_name)
                new_value = self._substitute_value(value)
                if new_value is not value:
                    setattr(obj, field_name, new_value)
        elif isinstance(obj, dict):
            for key in obj:
                obj[key] = self._substitute_value(obj[key])
        elif isinstance(obj, list):
            for i, item in enumerate(obj):
                obj[i] = self._substitute_value(item)

    def _substitute_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value)
        if isinstance(value, Path):
            return Path(self._substitute_string(str(value)))
        if isinstance(value, (BaseModel, dict, list)):
            self._substitute_recursive(value)
        return value

    def _substitute_string(self, value: str) -> str:
        """Replace {dotted.path} references with their values.

        Unknown references are left untouched, so prompt templates
        can keep their own {placeholders}.

        Examples:
            "{config.git.workdir}/build" -> "/home/user/repo/build"
            "{platformdirs.user_log_dir}" -> "~/.local/state/rebasecat/log"
        """
        def replace(match):
            parts = match.group(1).split(".")
            root = parts[0]
            if root in TEMPLATE_NAMESPACE:
                obj = TEMPLATE_NAMESPACE[parts[0]]
                parts = parts[1:]
            else:
                obj = self

            try:
                for part in parts:
                    obj = getattr(obj, part)
                if callable(obj):
                    if root == 'platformdirs':
                        obj = obj('rebasecat', appauthor=False)
                    else:
                        obj = obj()
                return str(obj)
            except (AttributeError, TypeError):
                return match.group(0)

        return re.sub(r'\{([A-Za-z_]+\.[a-z._]+)\}', replace, value)


__all__ = [
    "Config",
    "GitConfig",
    "LLMConfig",
    "State",
    "Runtime",
    "MIN_ATTEMPTS",
    "MAX_ATTEMPTS",
    "DEFAULT_ATTEMPTS",
]
