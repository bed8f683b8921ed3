"""MCP server: line-delimited JSON-RPC 2.0 over stdio.

One request per input line, one response line per request, strictly in
order. Every failure inside a request becomes a JSON-RPC error response;
only transport I/O errors end the loop.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from typing import Any, TextIO

import structlog
from mcp.types import Implementation, TextContent
from pydantic import ValidationError

from strata_mcp.config.models import ServerConfig
from strata_mcp.errors import McpError, ProtocolError, RpcCode
from strata_mcp.protocol import (
    JSONRPC_VERSION,
    SERVER_VERSION,
    JsonRpcRequest,
    JsonRpcResponse,
    dumps,
)
from strata_mcp.session import McpSession
from strata_mcp.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

type MethodHandler = Callable[[JsonRpcRequest], JsonRpcResponse]


def _validation_detail(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first["loc"])
    return f"{loc}: {first['msg']}" if loc else first["msg"]


class McpServer:
    """Dispatches JSON-RPC requests to protocol methods and tools.

    Attributes:
        session: Addressing context shared by all tool calls.
        registry: The tool catalog; built on construction when not given.
        config: Server identity reported by ``initialize``.
        initialized: Set once the client has sent ``initialize``.
    """

    def __init__(
        self,
        session: McpSession,
        registry: ToolRegistry | None = None,
        *,
        config: ServerConfig | None = None,
    ) -> None:
        self.session = session
        self.registry = registry if registry is not None else ToolRegistry()
        self.config = config if config is not None else ServerConfig()
        self.initialized = False
        self._methods: dict[str, MethodHandler] = {
            "initialize": self._initialize,
            "initialized": self._initialized,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
            "ping": self._ping,
        }

    # ── Transport ──

    def run(self, reader: TextIO | None = None, writer: TextIO | None = None) -> None:
        """Serve requests from *reader* (default stdin) until EOF."""
        reader = reader if reader is not None else sys.stdin
        writer = writer if writer is not None else sys.stdout
        logger.info("Serving %d tools over stdio", len(self.registry))
        while True:
            line = reader.readline()
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            response = self.handle_line(line)
            writer.write(response.to_line())
            writer.write("\n")
            writer.flush()
        logger.info("Client disconnected")

    def handle_line(self, line: str) -> JsonRpcResponse:
        """Decode one input line and handle it."""
        try:
            data = json.loads(line)
        except ValueError as exc:
            return JsonRpcResponse.failure(None, RpcCode.PARSE_ERROR, f"Parse error: {exc}")
        if not isinstance(data, dict):
            return JsonRpcResponse.failure(
                None, RpcCode.PARSE_ERROR, "Parse error: request must be a JSON object"
            )
        try:
            request = JsonRpcRequest.model_validate(data)
        except ValidationError as exc:
            return JsonRpcResponse.failure(
                None, RpcCode.PARSE_ERROR, f"Parse error: {_validation_detail(exc)}"
            )
        return self.handle_request(request)

    # ── Dispatch ──

    def handle_request(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """Route *request* to its method; never raises."""
        if request.jsonrpc != JSONRPC_VERSION:
            return JsonRpcResponse.from_error(
                request.id, ProtocolError("Invalid JSON-RPC version")
            )
        method = self._methods.get(request.method)
        if method is None:
            return JsonRpcResponse.failure(
                request.id, RpcCode.METHOD_NOT_FOUND, f"Unknown method: {request.method}"
            )
        with structlog.contextvars.bound_contextvars(rpc_id=request.id, method=request.method):
            logger.debug("Handling request")
            try:
                return method(request)
            except McpError as exc:
                logger.debug("Request failed: %s", exc)
                return JsonRpcResponse.from_error(request.id, exc)
            except Exception as exc:
                logger.exception("Unhandled error in %s", request.method)
                return JsonRpcResponse.failure(
                    request.id, RpcCode.INTERNAL_ERROR, f"Internal error: {exc}"
                )

    # ── Methods ──

    def _initialize(self, request: JsonRpcRequest) -> JsonRpcResponse:
        self.initialized = True
        return JsonRpcResponse.success(
            request.id,
            {
                "protocolVersion": self.config.protocol_version,
                "capabilities": {"tools": {}},
                "serverInfo": Implementation(
                    name=self.config.name, version=SERVER_VERSION
                ).model_dump(exclude_none=True),
            },
        )

    def _initialized(self, request: JsonRpcRequest) -> JsonRpcResponse:
        return JsonRpcResponse.success(request.id, None)

    def _ping(self, request: JsonRpcRequest) -> JsonRpcResponse:
        return JsonRpcResponse.success(request.id, {})

    def _tools_list(self, request: JsonRpcRequest) -> JsonRpcResponse:
        tools = [tool.to_wire() for tool in self.registry.tools]
        return JsonRpcResponse.success(request.id, {"tools": tools})

    def _tools_call(self, request: JsonRpcRequest) -> JsonRpcResponse:
        params = request.params
        if not isinstance(params, dict):
            return JsonRpcResponse.failure(
                request.id, RpcCode.INVALID_PARAMS, "Missing params object"
            )
        name = params.get("name")
        if not isinstance(name, str):
            return JsonRpcResponse.failure(
                request.id, RpcCode.INVALID_PARAMS, "Missing 'name' in params"
            )
        arguments: Any = params.get("arguments")
        if arguments is None:
            arguments = {}
        elif not isinstance(arguments, dict):
            return JsonRpcResponse.failure(
                request.id, RpcCode.INVALID_PARAMS, "'arguments' must be an object"
            )
        logger.debug("Calling tool %s", name)
        result = self.registry.dispatch(self.session, name, arguments)
        content = TextContent(type="text", text=dumps(result))
        return JsonRpcResponse.success(
            request.id, {"content": [content.model_dump(exclude_none=True)]}
        )
