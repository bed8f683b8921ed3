"""MCP tool catalog, grouped by category.

Each category module exposes ``TOOLS`` (its descriptors) and
``dispatch(session, name, args)``. ``ToolRegistry`` (in ``registry``) owns
the concatenated catalog and routes calls by name prefix.
"""
