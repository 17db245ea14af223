"""Configuration system for model backends and agent orchestration."""

from .loader import (
    load_config,
    load_config_from_yaml,
    load_config_from_env,
    list_profiles,
    resolve_profile_name,
    ProfileConfig,
    ModelConfig,
    ConversationConfig,
    AgentLoopConfig,
    CoordinatorConfig,
    MultiAgentConfig,
    DynamicSwitchConfig,
    ToolsConfig,
    StorageConfig,
)
from .factory import (
    MockModelClient,
    create_model_client,
    create_tool_registry,
    create_thread_store,
    create_agent_system,
    create_chat_session,
)

__all__ = [
    # Loader
    "load_config",
    "load_config_from_yaml",
    "load_config_from_env",
    "list_profiles",
    "resolve_profile_name",
    "ProfileConfig",
    "ModelConfig",
    # Sections
    "ConversationConfig",
    "AgentLoopConfig",
    "CoordinatorConfig",
    "MultiAgentConfig",
    "DynamicSwitchConfig",
    "ToolsConfig",
    "StorageConfig",
    # Factory
    "MockModelClient",
    "create_model_client",
    "create_tool_registry",
    "create_thread_store",
    "create_agent_system",
    "create_chat_session",
]
