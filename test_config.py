"""
Configuration System Tests

Tests for the YAML configuration loader and factory functions.
"""

import asyncio
from pathlib import Path

import pytest


def test_load_config_from_yaml():
    """Test loading the shipped profiles from YAML."""
    print("=" * 60)
    print("TEST 1: Load configuration from YAML")
    print("=" * 60)

    from maki.config.loader import DEFAULT_CONFIG_PATH, load_config_from_yaml

    profile = load_config_from_yaml(DEFAULT_CONFIG_PATH, "dev")
    print(f"\nLoaded profile: dev")
    print(f"  Backend: {profile.model.backend}")
    print(f"  Model: {profile.model.model}")
    print(f"  Coordinator cap: {profile.agent_loop.coordinator}")

    assert profile.model.backend == "openrouter"
    assert profile.model.model == "openai/gpt-4.1-mini"
    assert profile.agent_loop.coordinator == 2
    assert profile.agent_loop.sub_agent == 7
    assert profile.dynamic_switch.bulk_threshold == 3
    print("\n[PASS] dev profile loaded correctly")

    profile = load_config_from_yaml(DEFAULT_CONFIG_PATH, "test")
    assert profile.model.backend == "mock"
    assert profile.storage.enabled is False
    assert profile.multi_agent.max_parallel_agents == 0
    print("[PASS] test profile loaded correctly")


def test_unknown_profile_lists_available(tmp_path):
    """Unknown profile names raise KeyError naming the available profiles."""
    from maki.config import load_config

    config_path = tmp_path / "models.yaml"
    config_path.write_text("profiles:\n  only:\n    model:\n      backend: mock\n")

    with pytest.raises(KeyError) as exc_info:
        load_config(profile="missing", config_path=config_path)

    assert "only" in str(exc_info.value)
    print("[PASS] Unknown profile rejected")


def test_env_var_expansion(tmp_path, monkeypatch):
    """${VAR} values expand; unset ones fall back to the section default."""
    from maki.config.loader import ToolsConfig, load_config_from_yaml

    config_path = tmp_path / "models.yaml"
    config_path.write_text(
        "profiles:\n"
        "  local:\n"
        "    model:\n"
        "      backend: mock\n"
        "      api_key: ${MAKI_TEST_KEY}\n"
        "    tools:\n"
        "      workspace_dir: ${MAKI_TEST_WORKSPACE}\n"
    )

    monkeypatch.setenv("MAKI_TEST_WORKSPACE", str(tmp_path / "ws"))
    monkeypatch.delenv("MAKI_TEST_KEY", raising=False)

    profile = load_config_from_yaml(config_path, "local")
    assert profile.tools.workspace_dir == str(tmp_path / "ws")
    assert profile.model.api_key is None

    monkeypatch.delenv("MAKI_TEST_WORKSPACE")
    profile = load_config_from_yaml(config_path, "local")
    assert profile.tools.workspace_dir == ToolsConfig().workspace_dir
    print("[PASS] Env var expansion works")


def test_expand_env_vars_keeps_unset():
    from maki.config.loader import expand_env_vars, expand_env_vars_recursive

    assert expand_env_vars("${MAKI_SURELY_UNSET_VAR}") == "${MAKI_SURELY_UNSET_VAR}"
    assert expand_env_vars(5) == 5
    assert expand_env_vars_recursive({"a": [1, "x"]}) == {"a": [1, "x"]}


def test_load_config_profile_env(monkeypatch):
    """MAKI_PROFILE selects the profile when none is passed."""
    print("\n" + "=" * 60)
    print("TEST: Main load_config function")
    print("=" * 60)

    from maki.config import load_config, resolve_profile_name

    monkeypatch.setenv("MAKI_PROFILE", "test")
    assert resolve_profile_name() == "test"
    assert resolve_profile_name("dev") == "dev"

    profile = load_config()
    assert profile.model.backend == "mock"

    monkeypatch.delenv("MAKI_PROFILE")
    assert resolve_profile_name() == "dev"
    print("[PASS] load_config with MAKI_PROFILE works")


def test_load_config_env_fallback(tmp_path):
    """A missing config file falls back to environment variables."""
    from maki.config import load_config

    profile = load_config(profile="dev", config_path=tmp_path / "absent.yaml")
    assert profile.model.backend == "openrouter"
    assert profile.agent_loop.chat == 15
    print("[PASS] Environment fallback works correctly")


def test_list_profiles():
    from maki.config import list_profiles

    profiles = list_profiles()
    assert {"dev", "dev-anthropic", "test"} <= set(profiles)
    assert profiles["dev-anthropic"].model.backend == "anthropic"


def test_factory_create_model_client(monkeypatch):
    """Test creating model clients from config."""
    print("\n" + "=" * 60)
    print("TEST: Factory - create_model_client")
    print("=" * 60)

    from maki.config import MockModelClient, ModelConfig, create_model_client

    client = create_model_client(ModelConfig(backend="mock"))
    assert isinstance(client, MockModelClient)
    print("[PASS] Mock client created")

    monkeypatch.setattr("maki.llm.adapters.OPENROUTER_API_KEY", None)
    with pytest.raises(ValueError):
        create_model_client(ModelConfig(backend="openrouter"))

    client = create_model_client(ModelConfig(backend="openrouter", api_key="sk-test"))
    assert type(client).__name__ == "OpenRouterAdapter"
    print("[PASS] OpenRouter adapter created")


def test_mock_client_scripted_replies():
    from maki.config import MockModelClient
    from maki.llm import Message, MessageRole

    async def scenario():
        client = MockModelClient(responses=["first", RuntimeError("boom")])
        async with client:
            reply = await client.complete_with_tools([Message.user("hi")], [])
            assert reply.role == MessageRole.ASSISTANT
            assert reply.content == "first"

            with pytest.raises(RuntimeError):
                await client.complete_with_tools([Message.user("again")], [])

            reply = await client.complete_with_tools([Message.user("more")], [])
            assert reply.content == "[Mock response]"
        return client

    client = asyncio.run(scenario())
    assert len(client.calls) == 3


def test_factory_create_from_profile(tmp_path):
    """Test wiring the registry, store and agent system from a profile."""
    from maki.config import (
        MockModelClient,
        ModelConfig,
        ProfileConfig,
        StorageConfig,
        create_agent_system,
        create_thread_store,
        create_tool_registry,
    )
    from maki.config.loader import ToolsConfig

    profile = ProfileConfig(
        model=ModelConfig(backend="mock"),
        tools=ToolsConfig(workspace_dir=str(tmp_path / "workspace")),
        storage=StorageConfig(threads_path=str(tmp_path / "threads.json")),
    )

    registry = create_tool_registry(profile)
    assert Path(profile.tools.workspace_dir).is_dir()
    assert {"think", "signalBulkOperation", "glob", "listFiles", "readFile"} <= set(registry.names)
    assert {"writeFile", "createFolder", "copyFile", "fetchWebsiteContent"} <= set(registry.names)

    store = create_thread_store(profile.storage)
    assert store is not None
    assert create_thread_store(StorageConfig(enabled=False)) is None

    system = create_agent_system(MockModelClient(), profile, registry)
    assert system.registry is registry
    print("[PASS] create_agent_system works correctly")
