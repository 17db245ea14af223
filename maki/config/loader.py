"""Configuration loader with Pydantic validation and env var expansion."""

import logging
import os
import re
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel

from ..settings import (
    MAX_CONVERSATION_LENGTH,
    OPENROUTER_BASE_URL,
    THREADS_PATH,
    WORKSPACE_DIRECTORY,
)

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "dev"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "models.yaml"


class ModelConfig(BaseModel):
    """Configuration for the model client backend."""

    backend: Literal["openrouter", "anthropic", "mock"] = "openrouter"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.1
    timeout: float = 60.0


class ConversationConfig(BaseModel):
    """Configuration for chat conversation state."""

    max_conversation_length: int = MAX_CONVERSATION_LENGTH  # Reset above this many messages
    error_marker: str = "Error"  # Reset when the last assistant turn contains it
    recent_history_messages: int = 6  # History folded into delegated requests


class AgentLoopConfig(BaseModel):
    """Iteration caps for each agent role."""

    chat: int = 15
    coordinator: int = 2  # Quick planning only
    smart_agent: int = 8
    sub_agent: int = 7


class CoordinatorConfig(BaseModel):
    """Configuration for the coordinator (planning-only tool set)."""

    tools: list[str] = ["think"]


class MultiAgentConfig(BaseModel):
    """Configuration for the multi-agent executor."""

    max_parallel_agents: int = 0  # 0 = unbounded; set to cap concurrent sub-agents


class DynamicSwitchConfig(BaseModel):
    """Configuration for redirecting bulk work into parallel sub-agents."""

    enabled: bool = True
    markers: list[str] = ["PARALLEL_EXECUTION_NEEDED", "BULK_OPERATION_DETECTED"]
    bulk_threshold: int = 3  # More discovered items than this counts as bulk
    discovery_tools: list[str] = ["glob", "listFiles", "extractLinksFromPage"]
    signal_tool: str = "signalBulkOperation"


class ToolsConfig(BaseModel):
    """Configuration for the bundled tools."""

    workspace_dir: str = WORKSPACE_DIRECTORY
    web_timeout: float = 15.0
    fetch_max_length: int = 10000


class StorageConfig(BaseModel):
    """Configuration for conversation thread persistence."""

    enabled: bool = True
    threads_path: str = THREADS_PATH
    auto_persist: bool = True


class ProfileConfig(BaseModel):
    """Configuration profile containing all sections."""

    model: ModelConfig
    conversation: ConversationConfig = ConversationConfig()
    agent_loop: AgentLoopConfig = AgentLoopConfig()
    coordinator: CoordinatorConfig = CoordinatorConfig()
    multi_agent: MultiAgentConfig = MultiAgentConfig()
    dynamic_switch: DynamicSwitchConfig = DynamicSwitchConfig()
    tools: ToolsConfig = ToolsConfig()
    storage: StorageConfig = StorageConfig()


class ConfigFile(BaseModel):
    """Root configuration file structure."""

    profiles: dict[str, ProfileConfig]


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} references in string with environment variables.

    Unset variables are left as they are.

    Args:
        value: String potentially containing env var references

    Returns:
        String with env vars expanded
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}]+)\}"

    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return re.sub(pattern, replacer, value)


def expand_env_vars_recursive(data):
    """Recursively expand env vars in nested dict/list structures.

    Args:
        data: Dict, list, or primitive value

    Returns:
        Data structure with all env vars expanded
    """
    if isinstance(data, dict):
        return {k: expand_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return expand_env_vars(data)
    else:
        return data


def _drop_unresolved(data):
    # "${VAR}" left over means the variable is unset; treat it as missing
    if isinstance(data, dict):
        return {k: _drop_unresolved(v) for k, v in data.items() if not _is_unresolved(v)}
    if isinstance(data, list):
        return [_drop_unresolved(item) for item in data]
    return data


def _is_unresolved(value) -> bool:
    return isinstance(value, str) and re.fullmatch(r"\$\{[^}]+\}", value) is not None


def read_config_file(config_path: Path) -> ConfigFile:
    """Read and validate a YAML config file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
    """
    with open(config_path) as f:
        raw_data = yaml.safe_load(f) or {}

    expanded_data = _drop_unresolved(expand_env_vars_recursive(raw_data))
    return ConfigFile(**expanded_data)


def load_config_from_yaml(config_path: Path, profile_name: str) -> ProfileConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to config YAML file
        profile_name: Name of profile to load

    Returns:
        ProfileConfig for the requested profile

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config is invalid
        KeyError: If profile doesn't exist
    """
    config_file = read_config_file(config_path)

    if profile_name not in config_file.profiles:
        available = ", ".join(config_file.profiles.keys())
        raise KeyError(
            f"Profile '{profile_name}' not found. " f"Available profiles: {available}"
        )

    return config_file.profiles[profile_name]


def load_config_from_env() -> ProfileConfig:
    """Load configuration from environment variables (fallback mode).

    Returns:
        ProfileConfig constructed from environment variables
    """
    model = ModelConfig(
        backend="openrouter",
        model=os.environ.get("OPENROUTER_DEFAULT_MODEL"),
        api_key=os.environ.get("OPENROUTER_API_KEY"),
        base_url=os.environ.get("OPENROUTER_BASE_URL", OPENROUTER_BASE_URL),
    )

    return ProfileConfig(model=model)


def resolve_profile_name(profile: str | None = None) -> str:
    """Profile argument, then MAKI_PROFILE, then the default profile."""
    return profile or os.environ.get("MAKI_PROFILE") or DEFAULT_PROFILE


def list_profiles(config_path: Path | None = None) -> dict[str, ProfileConfig]:
    """All profiles defined in the config file."""
    return read_config_file(config_path or DEFAULT_CONFIG_PATH).profiles


def load_config(
    profile: str | None = None,
    config_path: Path | None = None,
) -> ProfileConfig:
    """Load configuration from YAML file or environment variables.

    This is the main entry point for loading configuration. It tries to load
    from a YAML config file first, and falls back to environment variables
    if the file is missing or invalid.

    Args:
        profile: Profile name to load. If None, uses MAKI_PROFILE env var
                or "dev" as default.
        config_path: Path to config file. If None, uses the models.yaml
                    shipped next to this module.

    Returns:
        ProfileConfig with all configuration sections

    Raises:
        KeyError: If requested profile doesn't exist
    """
    profile = resolve_profile_name(profile)
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        logger.warning(f"Config file {config_path} not found, using environment variables")
        return load_config_from_env()

    try:
        return load_config_from_yaml(config_path, profile)
    except KeyError:
        raise
    except Exception as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Falling back to environment variables...")
        return load_config_from_env()
