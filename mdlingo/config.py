"""
Project-wide configuration.

Module Contents:
    APP_NAME: Application name for display purposes
    DEFAULT_CONFIG_FILE: Config file looked up in the working directory
    DEFAULT_GLOSSARY_FILE: Glossary file name used by ``glossary init``
    DEFAULT_MODELS: Default model per provider
    AppConfig / load_config: The YAML config file

Example:
    >>> from mdlingo.config import load_config
    >>> config = load_config("mdlingo.config.yaml")
    >>> print(config.provider, config.model)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from mdlingo.errors import ConfigExistsError, InvalidConfigError, NotFoundError

# Application name for display and identification
APP_NAME = "mdlingo"

DEFAULT_CONFIG_FILE = Path("mdlingo.config.yaml")
DEFAULT_GLOSSARY_FILE = Path("glossary.yaml")

OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/v1")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

# Default models per provider (override with MDLINGO_{PROVIDER}_MODEL)
DEFAULT_MODELS = {
    "claude": os.getenv("MDLINGO_CLAUDE_MODEL", "claude-sonnet-4-5"),
    "gemini": os.getenv("MDLINGO_GEMINI_MODEL", "gemini-2.0-flash"),
    "ollama": os.getenv("MDLINGO_OLLAMA_MODEL", "llama3.2"),
    "openai": os.getenv("MDLINGO_OPENAI_MODEL", "gpt-4o"),
}

SUPPORTED_PROVIDERS = tuple(DEFAULT_MODELS) + ("dummy",)

TRANSLATE_TEMPLATE_NAME = "translate.md"

CONFIG_TEMPLATE = """\
# mdlingo configuration file

# Provider: claude, gemini, ollama, openai
provider: claude

# Model for the selected provider
#   claude: claude-sonnet-4-5, claude-haiku-4-5
#   gemini: gemini-2.0-flash
#   ollama: llama3.2, mistral (requires a running Ollama server)
#   openai: gpt-4o
model: claude-sonnet-4-5

# API keys come from the environment (or a .env file next to this config):
#   ANTHROPIC_API_KEY, GOOGLE_API_KEY, OPENAI_API_KEY
# or from the OS keychain: mdlingo keys set <service>

# Optional: endpoint override for OpenAI-compatible providers
# base_url: http://localhost:11434/v1

# Optional: directory holding a custom translate.md prompt template
# templates: ./templates

# Optional: default output directory for batch translation
# output_dir: ./output

# Optional: glossary used to steer translations
# glossary: ./glossary.yaml

# Optional: JSON-lines log of every model call
# log:
#   enabled: true
#   path: ./mdlingo.log
"""


@dataclass
class LogConfig:
    """Execution log settings."""
    enabled: bool = False
    path: Path = Path("mdlingo.log")


@dataclass
class AppConfig:
    """Settings read from the config file."""
    provider: str
    model: str
    base_url: Optional[str] = None
    templates: Optional[Path] = None
    output_dir: Optional[Path] = None
    glossary: Optional[Path] = None
    log: LogConfig = field(default_factory=LogConfig)

    def template_path(self) -> Optional[Path]:
        """Custom translate template, if the templates directory has one."""
        if self.templates is None:
            return None
        path = self.templates / TRANSLATE_TEMPLATE_NAME
        return path if path.exists() else None


def load_config(path: str | Path, env_dir: str | Path | None = None) -> AppConfig:
    """Load and validate the config file.

    Environment variables are read from ``.env`` in ``env_dir`` (or the
    working directory) first, so API keys can live beside the config.

    Raises:
        NotFoundError: If the file does not exist
        InvalidConfigError: If the YAML is malformed or fields are invalid
    """
    load_dotenv(Path(env_dir) / ".env" if env_dir else Path.cwd() / ".env")

    path = Path(path)
    if not path.exists():
        raise NotFoundError(
            f"Config file not found: {path}",
            hint="Run `mdlingo init` to create one.",
        )

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise InvalidConfigError(f"Config file is not valid YAML: {path}") from e

    if not isinstance(raw, dict):
        raise InvalidConfigError(f"Config file is empty or invalid: {path}")

    provider = raw.get("provider")
    if provider not in SUPPORTED_PROVIDERS:
        raise InvalidConfigError(
            f"Unsupported provider: {provider!r}",
            hint=f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}",
        )

    model = raw.get("model")
    if not model or not isinstance(model, str):
        raise InvalidConfigError("Config must specify a model")

    glossary = raw.get("glossary")
    if glossary is not None and not isinstance(glossary, str):
        raise InvalidConfigError('Config field "glossary" must be a string path')

    log_raw = raw.get("log") or {}
    if not isinstance(log_raw, dict):
        raise InvalidConfigError('Config field "log" must be a mapping')

    return AppConfig(
        provider=provider,
        model=model,
        base_url=raw.get("base_url"),
        templates=Path(raw["templates"]) if raw.get("templates") else None,
        output_dir=Path(raw["output_dir"]) if raw.get("output_dir") else None,
        glossary=Path(glossary) if glossary else None,
        log=LogConfig(
            enabled=bool(log_raw.get("enabled", False)),
            path=Path(log_raw.get("path") or LogConfig.path),
        ),
    )


def init_config(path: str | Path = DEFAULT_CONFIG_FILE, force: bool = False) -> Path:
    """Write the commented config template.

    Raises:
        ConfigExistsError: If the file exists and ``force`` is False
    """
    path = Path(path)
    if path.exists() and not force:
        raise ConfigExistsError(
            f"Config file already exists: {path}",
            hint="Use --force to overwrite the existing file.",
        )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    return path
