"""aiohttp routes for groups and ACLs."""

from __future__ import annotations

import json
from functools import partial
from typing import Any

import structlog
from aiohttp import web
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from access_control import bootstrap
from access_control.acl.models import Acl
from access_control.acl.permissions import UPDATE
from access_control.acl.validation import verify_ingest_management_permission
from access_control.context import RequestContext, System
from access_control.errors import BadRequestError, ServiceError, format_key_path
from access_control.groups.models import Group, MembersAdapter

logger = structlog.get_logger()

# Accepted on every route
STANDARD_PARAMS = {"token", "pretty"}
GROUP_SEARCH_PARAMS = {"name", "provider", "member", "legacy_guid"}
ACL_SEARCH_PARAMS = {"provider", "permitted_group", "identity_type"}


def api_response(request: web.Request, data: Any, status: int = 200) -> web.Response:
    """JSON response, indented when the request asks for ``pretty=true``."""
    if request.query.get("pretty", "").lower() == "true":
        return web.json_response(data, status=status, dumps=partial(json.dumps, indent=2))
    return web.json_response(data, status=status)


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Render ServiceError subclasses as JSON error bodies with their status code."""
    try:
        return await handler(request)
    except ServiceError as e:
        log = logger.error if e.status_code >= 500 else logger.info
        log(
            "request_failed",
            method=request.method,
            path=request.path,
            status=e.status_code,
            errors=e.messages,
        )
        return api_response(request, e.to_dict(), status=e.status_code)


def request_token(request: web.Request) -> str | None:
    """Token from the Authorization or Echo-Token header, else the token query parameter."""
    token = request.headers.get("Authorization") or request.headers.get("Echo-Token")
    if token and token.lower().startswith("bearer "):
        token = token[len("bearer "):]
    return token or request.query.get("token") or None


def request_context(request: web.Request) -> RequestContext:
    system: System = request.app["system"]
    return RequestContext(system, token=request_token(request))


def search_params(
    request: web.Request, allowed: set[str] | frozenset[str] = frozenset()
) -> dict[str, str]:
    """Return the non-standard query parameters, rejecting any not in ``allowed``."""
    params = {}
    unrecognized = []
    for name, value in request.query.items():
        if name in STANDARD_PARAMS:
            continue
        if name not in allowed:
            unrecognized.append(f"Parameter [{name}] was not recognized.")
        params[name] = value
    if unrecognized:
        raise BadRequestError(unrecognized)
    return params


def validate_standard_params(request: web.Request) -> None:
    search_params(request)


async def read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except ValueError as e:
        raise BadRequestError(f"Request body is not valid JSON: {e}") from e


def _pydantic_messages(error: PydanticValidationError) -> list[str]:
    messages = []
    for err in error.errors():
        path = format_key_path(tuple(err["loc"]))
        messages.append(f"{path}: {err['msg']}" if path else err["msg"])
    return messages


async def parse_body(request: web.Request, model: type[BaseModel]) -> Any:
    body = await read_json(request)
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise BadRequestError(_pydantic_messages(e)) from e


async def parse_members(request: web.Request) -> list[str]:
    body = await read_json(request)
    try:
        return MembersAdapter.validate_python(body)
    except PydanticValidationError as e:
        raise BadRequestError(_pydantic_messages(e)) from e


# Health and administration

async def health(request: web.Request) -> web.Response:
    """Health check endpoint - no authentication required."""
    return web.json_response({"status": "healthy"})


async def reset(request: web.Request) -> web.Response:
    """Restore the startup state. Requires update on the system ingest management ACL."""
    context = request_context(request)
    await verify_ingest_management_permission(context, UPDATE)
    await bootstrap.reset(context.system)
    return web.Response(status=204)


# Groups

async def create_group(request: web.Request) -> web.Response:
    validate_standard_params(request)
    context = request_context(request)
    group = await parse_body(request, Group)
    return api_response(request, await context.system.groups.create_group(context, group))


async def search_groups(request: web.Request) -> web.Response:
    params = search_params(request, GROUP_SEARCH_PARAMS)
    system: System = request.app["system"]
    return api_response(request, await system.groups.search_for_groups(**params))


async def get_group(request: web.Request) -> web.Response:
    validate_standard_params(request)
    system: System = request.app["system"]
    return api_response(request, await system.groups.get_group(request.match_info["concept_id"]))


async def update_group(request: web.Request) -> web.Response:
    validate_standard_params(request)
    context = request_context(request)
    group = await parse_body(request, Group)
    result = await context.system.groups.update_group(
        context, request.match_info["concept_id"], group
    )
    return api_response(request, result)


async def delete_group(request: web.Request) -> web.Response:
    validate_standard_params(request)
    context = request_context(request)
    result = await context.system.groups.delete_group(context, request.match_info["concept_id"])
    return api_response(request, result)


async def get_members(request: web.Request) -> web.Response:
    validate_standard_params(request)
    system: System = request.app["system"]
    return api_response(request, await system.groups.get_members(request.match_info["concept_id"]))


async def add_members(request: web.Request) -> web.Response:
    validate_standard_params(request)
    context = request_context(request)
    members = await parse_members(request)
    result = await context.system.groups.add_members(
        context, request.match_info["concept_id"], members
    )
    return api_response(request, result)


async def remove_members(request: web.Request) -> web.Response:
    validate_standard_params(request)
    context = request_context(request)
    members = await parse_members(request)
    result = await context.system.groups.remove_members(
        context, request.match_info["concept_id"], members
    )
    return api_response(request, result)


# ACLs

async def create_acl(request: web.Request) -> web.Response:
    validate_standard_params(request)
    context = request_context(request)
    acl = await parse_body(request, Acl)
    return api_response(request, await context.system.acls.create_acl(context, acl))


async def search_acls(request: web.Request) -> web.Response:
    params = search_params(request, ACL_SEARCH_PARAMS)
    system: System = request.app["system"]
    return api_response(request, await system.acls.search_for_acls(**params))


async def get_acl(request: web.Request) -> web.Response:
    validate_standard_params(request)
    system: System = request.app["system"]
    acl = await system.acls.get_acl(request.match_info["concept_id"])
    return api_response(request, acl.model_dump(mode="json", exclude_none=True))


async def update_acl(request: web.Request) -> web.Response:
    validate_standard_params(request)
    context = request_context(request)
    acl = await parse_body(request, Acl)
    result = await context.system.acls.update_acl(context, request.match_info["concept_id"], acl)
    return api_response(request, result)


async def delete_acl(request: web.Request) -> web.Response:
    validate_standard_params(request)
    context = request_context(request)
    result = await context.system.acls.delete_acl(context, request.match_info["concept_id"])
    return api_response(request, result)


def setup_routes(app: web.Application) -> None:
    app.router.add_get("/health", health)
    app.router.add_post("/reset", reset)

    app.router.add_post("/groups", create_group)
    app.router.add_get("/groups", search_groups)
    app.router.add_get("/groups/{concept_id}", get_group)
    app.router.add_put("/groups/{concept_id}", update_group)
    app.router.add_delete("/groups/{concept_id}", delete_group)
    app.router.add_get("/groups/{concept_id}/members", get_members)
    app.router.add_post("/groups/{concept_id}/members", add_members)
    app.router.add_delete("/groups/{concept_id}/members", remove_members)

    app.router.add_post("/acls", create_acl)
    app.router.add_get("/acls", search_acls)
    app.router.add_get("/acls/{concept_id}", get_acl)
    app.router.add_put("/acls/{concept_id}", update_acl)
    app.router.add_delete("/acls/{concept_id}", delete_acl)
