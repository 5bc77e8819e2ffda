"""AgentFlow-AI: a workflow execution engine for tool-using agents."""

__version__ = "0.1.0"
