from typing import Any, Optional

import strawberry
from strawberry.utils.inspect import in_async_context


def generate_query(query, *, types=()):
    schema = strawberry.Schema(query=query, types=types)

    async def query_async(query, variable_values, context_value):
        return await schema.execute(
            query,
            variable_values=variable_values,
            context_value=context_value,
        )

    def query_sync(query, variable_values=None, context_value=None):
        if in_async_context():
            return query_async(
                query,
                variable_values=variable_values,
                context_value=context_value,
            )
        return schema.execute_sync(
            query,
            variable_values=variable_values,
            context_value=context_value,
        )

    query_sync.schema = schema  # type: ignore[attr-defined]
    return query_sync


def edge_nodes(data: dict[str, Any], key: str = "name") -> list[Optional[Any]]:
    return [edge["node"][key] for edge in data["edges"]]
