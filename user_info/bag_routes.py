"""
HTTP routes for bags and the user's default bag.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response

from user_info.bags import BagStore
from user_info.dependencies import AppContext, get_bag_store, get_context
from user_info.envelope import parse_body
from user_info.errors import NotFoundError, UserNotFoundError
from user_info.resources import require_username
from user_info.routes import read_body
from user_info.schemas import AddBagResponse, BagListResponse, BagResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bags", tags=["bags"])


def add_username_suffix(username: str, user_domain: str) -> str:
    """Append the configured user domain unless the username already has it."""
    if user_domain and not username.endswith(user_domain):
        return f"{username}{user_domain}"
    return username


def bag_user(username: str, context: AppContext = Depends(get_context)) -> str:
    username = add_username_suffix(
        require_username(username), context.settings.user_domain
    )
    if not context.bags.user_exists(username):
        raise UserNotFoundError(username)
    return username


def _require_bag(bags: BagStore, username: str, bag_id: str) -> None:
    if not bags.has_bag(username, bag_id):
        raise NotFoundError(f"bag {bag_id} not found for user {username}")


@router.get("/", response_class=PlainTextResponse)
def greeting():
    return "Hello from the bags handler"


@router.head("/{username}")
def has_bags(username: str = Depends(bag_user), bags: BagStore = Depends(get_bag_store)):
    if bags.has_bags(username):
        return Response(status_code=200)
    return Response(status_code=404)


@router.get("/{username}", response_model=BagListResponse)
def get_bags(username: str = Depends(bag_user), bags: BagStore = Depends(get_bag_store)):
    records = bags.get_bags(username)
    return BagListResponse(bags=[BagResponse.from_record(r) for r in records])


@router.api_route("/{username}", methods=["PUT", "POST"], response_model=AddBagResponse)
def add_bag(
    username: str = Depends(bag_user),
    body: bytes = Depends(read_body),
    bags: BagStore = Depends(get_bag_store),
):
    contents = parse_body(body, objects_only=True, error_status=400)
    bag_id = bags.add_bag(username, contents)
    logger.info("Added bag %s for %s", bag_id, username)
    return AddBagResponse(id=bag_id)


@router.delete("/{username}")
def delete_all_bags(
    username: str = Depends(bag_user), bags: BagStore = Depends(get_bag_store)
):
    bags.delete_all_bags(username)
    return Response(status_code=200)


@router.get("/{username}/default", response_model=BagResponse)
def get_default_bag(
    username: str = Depends(bag_user), bags: BagStore = Depends(get_bag_store)
):
    return BagResponse.from_record(bags.get_default_bag(username))


@router.api_route("/{username}/default", methods=["POST", "PUT"])
def update_default_bag(
    username: str = Depends(bag_user),
    body: bytes = Depends(read_body),
    bags: BagStore = Depends(get_bag_store),
):
    contents = parse_body(body, objects_only=True, error_status=500)
    bags.update_default_bag(username, contents)
    return Response(status_code=200)


@router.delete("/{username}/default")
def delete_default_bag(
    username: str = Depends(bag_user), bags: BagStore = Depends(get_bag_store)
):
    bags.delete_default_bag(username)
    return Response(status_code=200)


@router.get("/{username}/{bag_id}", response_model=BagResponse)
def get_bag(
    bag_id: str,
    username: str = Depends(bag_user),
    bags: BagStore = Depends(get_bag_store),
):
    _require_bag(bags, username, bag_id)
    return BagResponse.from_record(bags.get_bag(username, bag_id))


@router.api_route("/{username}/{bag_id}", methods=["POST", "PUT"])
def update_bag(
    bag_id: str,
    username: str = Depends(bag_user),
    body: bytes = Depends(read_body),
    bags: BagStore = Depends(get_bag_store),
):
    _require_bag(bags, username, bag_id)
    contents = parse_body(body, objects_only=True, error_status=500)
    bags.update_bag(username, bag_id, contents)
    return Response(status_code=200)


@router.delete("/{username}/{bag_id}")
def delete_bag(
    bag_id: str,
    username: str = Depends(bag_user),
    bags: BagStore = Depends(get_bag_store),
):
    bags.delete_bag(username, bag_id)
    return Response(status_code=200)
