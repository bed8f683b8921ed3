"""Tests for the tool catalog and its prefix routing."""

from __future__ import annotations

import pytest
from mcp.types import Tool

from strata_mcp.errors import UnknownToolError
from strata_mcp.session import McpSession
from strata_mcp.tools.base import object_schema, schema_type
from strata_mcp.tools.registry import CATEGORIES, PREFIXES, ToolRegistry


class TestCatalog:
    def test_tool_count(self, registry: ToolRegistry) -> None:
        assert len(registry) == 63

    def test_names_are_unique(self, registry: ToolRegistry) -> None:
        names = [tool.name for tool in registry.tools]
        assert len(names) == len(set(names))

    def test_every_tool_is_routed_to_its_own_category(self, registry: ToolRegistry) -> None:
        for category in CATEGORIES:
            for tool in category.TOOLS:
                matching = [p for p in PREFIXES if tool.name.startswith(p)]
                assert matching, tool.name
                assert PREFIXES[max(matching, key=len)] is category, tool.name

    def test_schemas_are_objects(self, registry: ToolRegistry) -> None:
        for tool in registry.tools:
            schema = tool.input_schema
            assert schema["type"] == "object", tool.name
            assert set(schema["required"]) <= set(schema["properties"]), tool.name

    def test_descriptions_are_non_empty(self, registry: ToolRegistry) -> None:
        assert all(tool.description.strip() for tool in registry.tools)

    def test_wire_form_uses_camel_case(self, registry: ToolRegistry) -> None:
        wire = registry.get("strata_kv_put").to_wire()
        assert set(wire) == {"name", "description", "inputSchema"}
        assert wire["inputSchema"]["required"] == ["key", "value"]

    def test_wire_form_is_a_valid_mcp_tool(self, registry: ToolRegistry) -> None:
        for tool in registry.tools:
            parsed = Tool.model_validate(tool.to_wire())
            assert parsed.name == tool.name
            assert parsed.inputSchema == tool.input_schema

    def test_lookup(self, registry: ToolRegistry) -> None:
        assert "strata_db_ping" in registry
        assert "strata_nope" not in registry
        assert registry.get("strata_nope") is None
        assert registry.get("strata_search").name == "strata_search"


class TestDispatch:
    @pytest.mark.parametrize("name", ["strata_nope", "kv_put", "strata_kv_explode", ""])
    def test_unknown_tool(
        self, registry: ToolRegistry, session: McpSession, name: str
    ) -> None:
        with pytest.raises(UnknownToolError) as exc_info:
            registry.dispatch(session, name, {})
        assert exc_info.value.data() == {"tool": name}

    def test_routes_to_category(self, registry: ToolRegistry, session: McpSession) -> None:
        registry.dispatch(session, "strata_kv_put", {"key": "k", "value": 1})
        assert registry.dispatch(session, "strata_kv_get", {"key": "k"})["value"] == 1


class TestSchemaHelpers:
    def test_object_schema(self) -> None:
        schema = object_schema(
            required={"key": "string"},
            optional={"limit": "integer", "meta": {"type": "object", "title": "m"}},
        )
        assert schema == {
            "type": "object",
            "properties": {
                "key": {"type": "string"},
                "limit": {"type": "integer"},
                "meta": {"type": "object", "title": "m"},
            },
            "required": ["key"],
        }

    def test_empty_schema(self) -> None:
        assert object_schema() == {"type": "object", "properties": {}, "required": []}

    def test_any_is_unconstrained(self) -> None:
        assert schema_type("any") == {}

    def test_unknown_short_type(self) -> None:
        with pytest.raises(ValueError, match="unknown schema type"):
            schema_type("tuple")
