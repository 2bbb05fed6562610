"""Shared API dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from post_emitter.context import AppContext


def get_context(request: Request) -> AppContext:
    """Return the application context attached at start-up."""
    return request.app.state.context


ContextDep = Annotated[AppContext, Depends(get_context)]
