"""Tests for the tool registry."""

import threading

from fakes import EchoTool

from zap.tools.registry import ToolRegistry


class TestToolRegistry:
    """Registration and lookup."""

    def test_register_and_get(self):
        registry = ToolRegistry()
        tool = EchoTool("echo")
        registry.register(tool)
        assert registry.get("echo") is tool
        assert registry.has_tool("echo")
        assert len(registry) == 1

    def test_get_missing(self):
        registry = ToolRegistry()
        assert registry.get("nope") is None
        assert not registry.has_tool("nope")

    def test_register_overwrites(self):
        registry = ToolRegistry()
        first = EchoTool("echo", result="first")
        second = EchoTool("echo", result="second")
        registry.register(first)
        registry.register(second)
        assert registry.get("echo") is second
        assert len(registry) == 1

    def test_names_keep_registration_order(self):
        registry = ToolRegistry()
        for name in ("b", "a", "c"):
            registry.register(EchoTool(name))
        assert registry.names() == ["b", "a", "c"]
        assert [t.name for t in registry.get_all()] == ["b", "a", "c"]

    def test_empty_context_string(self):
        assert ToolRegistry().get_context_string() == "No tools available."

    def test_context_string_lists_tools(self):
        registry = ToolRegistry()
        registry.register(EchoTool("echo"))
        registry.register(EchoTool("ping"))
        context = registry.get_context_string()
        assert context.startswith("## AVAILABLE TOOLS")
        assert "echo\n  echo test tool\n  Parameters: {\"x\": \"any\"}" in context
        assert "ping test tool" in context


class TestRegistryConcurrency:
    """Reads and writes from several threads."""

    def test_concurrent_register_and_read(self):
        registry = ToolRegistry()
        errors = []

        def writer(prefix: str) -> None:
            for i in range(50):
                registry.register(EchoTool(f"{prefix}_{i}"))

        def reader() -> None:
            try:
                for _ in range(200):
                    for name in registry.names():
                        registry.get(name)
                    registry.get_context_string()
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(p,)) for p in ("a", "b")]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert len(registry) == 100
