"""
HTTP routes for the single-record resources and the service root.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from user_info.dependencies import AppContext, get_context
from user_info.resources import RESOURCE_KINDS, RecordService, ResourceKind

router = APIRouter()


async def read_body(request: Request) -> bytes:
    return await request.body()


@router.get("/", response_class=PlainTextResponse)
def greeting():
    return "Hello from user-info.\n"


def resource_router(kind: ResourceKind) -> APIRouter:
    """
    GET/PUT/POST/DELETE ``/{kind}/{username}`` for one resource type. PUT is
    an alias for POST: both insert or update.
    """
    resource = APIRouter(prefix=f"/{kind.name}", tags=[kind.name])

    def get_service(context: AppContext = Depends(get_context)) -> RecordService:
        return context.service(kind)

    @resource.get("/", response_class=PlainTextResponse)
    def resource_greeting():
        return kind.greeting

    @resource.get("/{username}")
    def get_document(username: str, service: RecordService = Depends(get_service)):
        document = service.fetch(username)
        if isinstance(document, str):
            return Response(content=document, media_type="application/json")
        return JSONResponse(content=document)

    @resource.api_route("/{username}", methods=["PUT", "POST"])
    def save_document(
        username: str,
        body: bytes = Depends(read_body),
        service: RecordService = Depends(get_service),
    ):
        return JSONResponse(content=service.save(username, body))

    @resource.delete("/{username}")
    def delete_document(username: str, service: RecordService = Depends(get_service)):
        service.remove(username)
        return Response(status_code=200)

    return resource


for _kind in RESOURCE_KINDS:
    router.include_router(resource_router(_kind))
