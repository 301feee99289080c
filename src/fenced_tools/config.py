"""Configuration for fenced tool calling.

Which grammar a backend speaks is chosen explicitly, either from the
environment (``FENCED_TOOLS_GRAMMAR``) or through :meth:`ToolCallingSettings.for_backend`.
"""

import logging
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fenced_tools.exceptions import ConfigurationError
from fenced_tools.logger import setup_logging
from fenced_tools.parsers import ToolCallGrammar, ToolCallParser

# Backends known to emit each grammar
BACKEND_GRAMMARS: dict[str, str] = {
    "built-in-ai": "json",
    "web-llm": "json",
    "tanstack": "json",
    "transformers-js": "extended",
}


class ToolCallingSettings(BaseSettings):
    """Settings for the text-embedded tool calling protocol.

    Attributes:
        grammar: Grammar preset or syntax name, "json" or "extended".
        allow_parallel_tool_calls: Whether the prompt allows several calls per fence.
        log_level: Level applied to the library logger by :meth:`configure_logging`.
    """

    model_config = SettingsConfigDict(env_prefix="FENCED_TOOLS_", extra="ignore")

    grammar: str = Field(default="json")
    allow_parallel_tool_calls: bool = Field(default=False)
    log_level: str = Field(default="WARNING")

    @field_validator("grammar")
    @classmethod
    def validate_grammar(cls, v: str) -> str:
        """Reject grammar names that do not resolve."""
        try:
            ToolCallGrammar.from_name(v)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Store level names upper-cased; reject names logging does not know."""
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level '{v}'")
        return level

    @property
    def tool_call_grammar(self) -> ToolCallGrammar:
        """The resolved grammar flags."""
        return ToolCallGrammar.from_name(self.grammar)

    def configure_logging(self) -> None:
        """Apply ``log_level`` to the library logger via :func:`setup_logging`."""
        setup_logging(self.log_level)

    def make_parser(self) -> ToolCallParser:
        """Create a parser for the configured grammar."""
        return ToolCallParser(self.tool_call_grammar)

    @classmethod
    def for_backend(cls, backend: str, **overrides: Any) -> "ToolCallingSettings":
        """Settings for a known backend.

        Args:
            backend: Backend name, e.g. "web-llm" or "transformers-js".
            **overrides: Other settings to set explicitly.

        Raises:
            ConfigurationError: If the backend is unknown.
        """
        key = backend.strip().lower()
        if key not in BACKEND_GRAMMARS:
            known = ", ".join(sorted(BACKEND_GRAMMARS))
            raise ConfigurationError(f"Unknown backend '{backend}' (expected one of: {known})")
        overrides.setdefault("grammar", BACKEND_GRAMMARS[key])
        return cls(**overrides)
