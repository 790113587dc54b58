"""
Tracing settings, read from PHOENIX_* environment variables.
"""

import os
from dataclasses import dataclass

_TRUE_VALUES = ("true", "1", "yes")


def _flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() in _TRUE_VALUES


@dataclass
class PhoenixConfig:
    """Where and whether retrieval spans are exported.

    Environment Variables:
        PHOENIX_ENABLED: Export spans at all (default: false)
        PHOENIX_PROJECT_NAME: Project shown in the Phoenix UI (default: rag-context-pipeline)
        PHOENIX_COLLECTOR_ENDPOINT: OTLP/HTTP endpoint of a running Phoenix;
            a local Phoenix app is launched when unset
        PHOENIX_CAPTURE_QUERY_TEXT: Put the raw user query on the request span (default: false)

    PRIVACY WARNING:
        PHOENIX_CAPTURE_QUERY_TEXT=true sends what users typed to the
        collector. Leave it off unless that is acceptable.
    """

    enabled: bool = False
    project_name: str = "rag-context-pipeline"
    collector_endpoint: str | None = None
    capture_query_text: bool = False

    @classmethod
    def from_env(cls) -> "PhoenixConfig":
        return cls(
            enabled=_flag("PHOENIX_ENABLED"),
            project_name=os.environ.get("PHOENIX_PROJECT_NAME", "rag-context-pipeline"),
            collector_endpoint=os.environ.get("PHOENIX_COLLECTOR_ENDPOINT") or None,
            capture_query_text=_flag("PHOENIX_CAPTURE_QUERY_TEXT"),
        )


_config: PhoenixConfig | None = None


def get_config() -> PhoenixConfig:
    """Tracing settings, loaded from the environment on first use."""
    global _config
    if _config is None:
        _config = PhoenixConfig.from_env()
    return _config


def reset_config() -> None:
    global _config
    _config = None
