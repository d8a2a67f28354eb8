"""Owner resolution for conversation routes.

Authentication is not implemented: the owner comes from the ``userId``
query parameter. Swap the resolver on ``app.state.owner_resolver`` for a
real identity provider without touching the routes.
"""
from typing import Protocol

from fastapi import Request

from answer_engine.core.exceptions import ClientInputError


class OwnerResolver(Protocol):
    def resolve_owner_id(self, request: Request) -> int:
        ...


class QueryParamOwnerResolver:
    """Reads the owner id from ``?userId=``, defaulting to a placeholder user."""

    def __init__(self, default_owner_id: int = 1, param: str = "userId"):
        self.default_owner_id = default_owner_id
        self.param = param

    def resolve_owner_id(self, request: Request) -> int:
        raw = request.query_params.get(self.param)
        if raw is None or raw == "":
            return self.default_owner_id
        try:
            return int(raw)
        except ValueError:
            raise ClientInputError("Valid user ID is required", code="INVALID_USER_ID")
