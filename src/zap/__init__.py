"""
ZAP - terminal API debugging assistant driven by a ReAct agent.

Package structure:
- core: configuration, logging, shared types and errors
- tools: tool contract, registry, response parser, call accounting, confirmation
- agents: conversation history, system prompt and the ReAct loop
- llm: language model client (Ollama)
"""

__version__ = "0.1.0"
