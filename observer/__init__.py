"""Observer agents: prompt pre-processing for long-running LLM agents."""

__version__ = "0.1.0"
