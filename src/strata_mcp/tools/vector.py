"""Vector store tools (9).

Vectors: upsert, get, delete, search, batch_upsert. Collections:
create_collection, delete_collection, list_collections, stats.
"""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, json_to_value, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.engine.types import BatchVectorEntry, DistanceMetric, FilterOp, MetadataFilter
from strata_mcp.errors import InvalidArgumentError
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import (
    get_object_array,
    get_optional_object_array,
    get_optional_string,
    get_optional_u64,
    get_optional_value,
    get_string_arg,
    get_u64_arg,
    get_vector_arg,
)
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

METRICS: dict[str, DistanceMetric] = {
    "cosine": DistanceMetric.COSINE,
    "euclidean": DistanceMetric.EUCLIDEAN,
    "dot_product": DistanceMetric.DOT_PRODUCT,
    "dotproduct": DistanceMetric.DOT_PRODUCT,
}

FILTER_OPS: dict[str, FilterOp] = {
    "eq": FilterOp.EQ,
    "=": FilterOp.EQ,
    "==": FilterOp.EQ,
    "ne": FilterOp.NE,
    "!=": FilterOp.NE,
    "<>": FilterOp.NE,
    "gt": FilterOp.GT,
    ">": FilterOp.GT,
    "gte": FilterOp.GTE,
    ">=": FilterOp.GTE,
    "lt": FilterOp.LT,
    "<": FilterOp.LT,
    "lte": FilterOp.LTE,
    "<=": FilterOp.LTE,
    "in": FilterOp.IN,
    "contains": FilterOp.CONTAINS,
}

_FILTER_SCHEMA: dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "field": {"type": "string", "description": "Metadata field name"},
            "op": {
                "type": "string",
                "enum": [op.value for op in FilterOp],
                "description": "Comparison operator",
            },
            "value": {"description": "Value to compare against"},
        },
        "required": ["field", "op", "value"],
    },
}

_METRIC_SCHEMA: dict[str, Any] = {"type": "string", "enum": ["cosine", "euclidean", "dot_product"]}
_AS_OF_SCHEMA: dict[str, Any] = {
    "type": "integer",
    "description": "Microsecond timestamp for time-travel reads",
}

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_vector_upsert",
        description="Insert or update a vector with optional metadata. Returns the version number.",
        input_schema=object_schema(
            required={"collection": "string", "key": "string", "vector": "array_number"},
            optional={"metadata": "any"},
        ),
    ),
    ToolDef(
        name="strata_vector_get",
        description=(
            "Get a vector by key. Returns the embedding, metadata, and version info. "
            "Pass as_of (microsecond timestamp) for time-travel reads."
        ),
        input_schema=object_schema(
            required={"collection": "string", "key": "string"}, optional={"as_of": _AS_OF_SCHEMA}
        ),
    ),
    ToolDef(
        name="strata_vector_delete",
        description="Delete a vector. Returns true if the vector existed.",
        input_schema=object_schema(required={"collection": "string", "key": "string"}),
    ),
    ToolDef(
        name="strata_vector_search",
        description=(
            "Search for similar vectors. Returns top-k matches with scores. "
            "Filters narrow results by metadata: each filter has field (metadata key), "
            "op (eq|ne|gt|gte|lt|lte|in|contains), and value. "
            "Pass as_of (microsecond timestamp) for time-travel reads."
        ),
        input_schema=object_schema(
            required={"collection": "string", "query": "array_number", "k": "integer"},
            optional={"filter": _FILTER_SCHEMA, "metric": _METRIC_SCHEMA, "as_of": _AS_OF_SCHEMA},
        ),
    ),
    ToolDef(
        name="strata_vector_create_collection",
        description=(
            "Create a new vector collection with the given dimension and distance metric "
            "(cosine, euclidean or dot_product; default cosine)."
        ),
        input_schema=object_schema(
            required={"collection": "string", "dimension": "integer"},
            optional={"metric": _METRIC_SCHEMA},
        ),
    ),
    ToolDef(
        name="strata_vector_delete_collection",
        description=(
            "Delete a vector collection and all its vectors. "
            "Returns true if the collection existed."
        ),
        input_schema=object_schema(required={"collection": "string"}),
    ),
    ToolDef(
        name="strata_vector_list_collections",
        description="List all vector collections in the current branch/space.",
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_vector_stats",
        description="Get detailed statistics for a specific collection.",
        input_schema=object_schema(required={"collection": "string"}),
    ),
    ToolDef(
        name="strata_vector_batch_upsert",
        description=(
            "Insert or update multiple vectors in a single operation. entries is an array "
            "of {key, vector, metadata?}. Returns one version number per entry."
        ),
        input_schema=object_schema(
            required={"collection": "string", "entries": "array_object"}
        ),
    ),
]


def parse_metric(raw: str | None) -> DistanceMetric | None:
    if raw is None:
        return None
    try:
        return METRICS[raw]
    except KeyError:
        raise InvalidArgumentError(
            "metric", f"Unknown metric '{raw}'. Use 'cosine', 'euclidean', or 'dot_product'."
        ) from None


def parse_filters(args: dict[str, Any]) -> list[MetadataFilter] | None:
    """Parse the optional ``filter`` array; an empty array means no filter."""
    items = get_optional_object_array(args, "filter")
    if not items:
        return None
    filters: list[MetadataFilter] = []
    for i, item in enumerate(items):
        label = f"filter[{i}]"
        field = item.get("field")
        if not isinstance(field, str):
            raise InvalidArgumentError(f"{label}.field", "Missing or invalid field")
        op_name = item.get("op")
        if not isinstance(op_name, str):
            raise InvalidArgumentError(f"{label}.op", "Missing or invalid op")
        op = FILTER_OPS.get(op_name)
        if op is None:
            raise InvalidArgumentError(f"{label}.op", f"Unknown filter operation '{op_name}'")
        if "value" not in item:
            raise InvalidArgumentError(f"{label}.value", "Missing value")
        value = json_to_value(item["value"], f"{label}.value")
        filters.append(MetadataFilter(field=field, op=op, value=value))
    return filters


def parse_batch_entries(args: dict[str, Any]) -> list[BatchVectorEntry]:
    entries: list[BatchVectorEntry] = []
    for i, item in enumerate(get_object_array(args, "entries")):
        prefix = f"entries[{i}]."
        entries.append(
            BatchVectorEntry(
                key=get_string_arg(item, "key", prefix=prefix),
                vector=get_vector_arg(item, "vector", prefix=prefix),
                metadata=get_optional_value(item, "metadata", prefix=prefix),
            )
        )
    return entries


def _upsert(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorUpsert(
        branch=session.branch_id(),
        space=session.space_id(),
        collection=get_string_arg(args, "collection"),
        key=get_string_arg(args, "key"),
        vector=get_vector_arg(args, "vector"),
        metadata=get_optional_value(args, "metadata"),
    )
    return output_to_json(session.execute(command))


def _get(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorGet(
        branch=session.branch_id(),
        space=session.space_id(),
        collection=get_string_arg(args, "collection"),
        key=get_string_arg(args, "key"),
        as_of=get_optional_u64(args, "as_of"),
    )
    return output_to_json(session.execute(command))


def _delete(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorDelete(
        branch=session.branch_id(),
        space=session.space_id(),
        collection=get_string_arg(args, "collection"),
        key=get_string_arg(args, "key"),
    )
    return output_to_json(session.execute(command))


def _search(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorSearch(
        branch=session.branch_id(),
        space=session.space_id(),
        collection=get_string_arg(args, "collection"),
        query=get_vector_arg(args, "query"),
        k=get_u64_arg(args, "k"),
        filter=parse_filters(args),
        metric=parse_metric(get_optional_string(args, "metric")),
        as_of=get_optional_u64(args, "as_of"),
    )
    return output_to_json(session.execute(command))


def _create_collection(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorCreateCollection(
        branch=session.branch_id(),
        space=session.space_id(),
        collection=get_string_arg(args, "collection"),
        dimension=get_u64_arg(args, "dimension"),
        metric=parse_metric(get_optional_string(args, "metric")) or DistanceMetric.COSINE,
    )
    return output_to_json(session.execute(command))


def _delete_collection(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorDeleteCollection(
        branch=session.branch_id(),
        space=session.space_id(),
        collection=get_string_arg(args, "collection"),
    )
    return output_to_json(session.execute(command))


def _list_collections(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorListCollections(branch=session.branch_id(), space=session.space_id())
    return output_to_json(session.execute(command))


def _stats(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorCollectionStats(
        branch=session.branch_id(),
        space=session.space_id(),
        collection=get_string_arg(args, "collection"),
    )
    return output_to_json(session.execute(command))


def _batch_upsert(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.VectorBatchUpsert(
        branch=session.branch_id(),
        space=session.space_id(),
        collection=get_string_arg(args, "collection"),
        entries=parse_batch_entries(args),
    )
    return output_to_json(session.execute(command))


_HANDLERS: dict[str, Handler] = {
    "strata_vector_upsert": _upsert,
    "strata_vector_get": _get,
    "strata_vector_delete": _delete,
    "strata_vector_search": _search,
    "strata_vector_create_collection": _create_collection,
    "strata_vector_delete_collection": _delete_collection,
    "strata_vector_list_collections": _list_collections,
    "strata_vector_stats": _stats,
    "strata_vector_batch_upsert": _batch_upsert,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
