"""
Agents module - the ReAct loop and its supporting state.

- history: bounded conversation history
- prompt: system prompt assembly
- react: the Thought / ACTION / Observation loop
- worker: runs a turn on a background thread
"""

from zap.agents.history import History
from zap.agents.react import ReActAgent, apply_settings
from zap.agents.worker import TurnWorker

__all__ = ["History", "ReActAgent", "TurnWorker", "apply_settings"]
