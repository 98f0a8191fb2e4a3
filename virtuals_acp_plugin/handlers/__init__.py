from .general_query import (
    GeneralQueryRequirement,
    build_query_message,
    can_handle_query,
    format_response,
    handle_general_query,
)

__all__ = [
    "GeneralQueryRequirement",
    "build_query_message",
    "can_handle_query",
    "format_response",
    "handle_general_query",
]
