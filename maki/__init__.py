"""maki: a conversational tool-use agent with multi-agent delegation."""

__version__ = "0.1.0"
