"""Configuration settings for the maki agent."""

import logging
import os
from dotenv import load_dotenv

load_dotenv()

# Logging setup
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

# OpenRouter
# Any tool-calling model exposed by OpenRouter works, e.g.:
# - openai/gpt-4.1-mini (default, reliable function calling)
# - google/gemini-2.5-flash-preview
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_DEFAULT_MODEL = os.getenv("OPENROUTER_DEFAULT_MODEL", "openai/gpt-4.1-mini")
OPENROUTER_APP_URL = "https://github.com/justinechang39/maki"
OPENROUTER_APP_TITLE = "maki CLI tool"

# Anthropic (direct API)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_DEFAULT_MODEL = os.getenv("ANTHROPIC_DEFAULT_MODEL", "claude-3-5-haiku-latest")

# Workspace that file tools are confined to
WORKSPACE_DIRECTORY = os.getenv("MAKI_WORKSPACE", "file_assistant_workspace")

# Conversation thread persistence
THREADS_PATH = os.getenv("MAKI_THREADS_PATH", os.path.join(".maki", "threads.json"))

# Conversation limits
MAX_CONVERSATION_LENGTH = int(os.getenv("MAKI_MAX_CONVERSATION_LENGTH", "20"))
