"""
Owner-scoped CRUD routes, one router per resource kind.

    GET    /<kind>?ownerId=...        -> 200 [record]
    POST   /<kind>      {..., ownerId} -> 201 record
    PUT    /<kind>/{id} {..., ownerId} -> 200 record | 404
    DELETE /<kind>/{id}?ownerId=...   -> 200 | 404

A record owned by someone else answers exactly like a missing one.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Request, status

from lifeboard.resources.models import RESOURCE_KINDS, ResourceKind
from lifeboard.resources.store import DocumentStore, validate_id
from lifeboard.utils.exceptions import InvalidInputError, NotFoundError
from .auth_middleware import authorize_owner


def get_store(request: Request) -> DocumentStore:
    return request.app.state.document_store


def _require_owner(owner_id: Optional[str]) -> str:
    if not owner_id:
        raise InvalidInputError("ownerId is required")
    return owner_id


def _check_parent(store: DocumentStore, kind: ResourceKind, owner_id: str, fields: Dict[str, Any]) -> None:
    """A referenced parent record must exist for the same owner."""
    if not kind.parent:
        return
    parent_id = fields.get(kind.parent_field)
    if parent_id is None:
        return
    if store.find_one(kind.parent, parent_id, owner_id) is None:
        raise NotFoundError(f"{RESOURCE_KINDS[kind.parent].label} not found")


def build_resource_router(kind: ResourceKind) -> APIRouter:
    router = APIRouter(prefix=kind.path, tags=[kind.name])
    create_model = kind.create_model
    update_model = kind.update_model
    not_found = f"{kind.label} not found"
    children = [k for k in RESOURCE_KINDS.values() if k.parent == kind.name]

    @router.get("")
    def list_records(
        request: Request, owner_id: Optional[str] = Query(default=None, alias="ownerId")
    ) -> List[Dict[str, Any]]:
        owner_id = _require_owner(owner_id)
        authorize_owner(request, owner_id)
        return get_store(request).find(kind.name, owner_id)

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_record(request: Request, payload: create_model) -> Dict[str, Any]:
        authorize_owner(request, payload.owner_id)
        fields = payload.model_dump(by_alias=True, exclude={"owner_id"})
        store = get_store(request)
        _check_parent(store, kind, payload.owner_id, fields)
        return store.insert(kind.name, payload.owner_id, fields)

    @router.put("/{record_id}")
    def update_record(request: Request, record_id: str, payload: update_model) -> Dict[str, Any]:
        validate_id(record_id, kind.label)
        authorize_owner(request, payload.owner_id)
        changes = payload.model_dump(by_alias=True, exclude_unset=True, exclude={"owner_id"})
        if not changes:
            raise InvalidInputError("Nothing to update")
        store = get_store(request)
        _check_parent(store, kind, payload.owner_id, changes)
        record = store.update(kind.name, record_id, payload.owner_id, changes)
        if record is None:
            raise NotFoundError(not_found)
        return record

    @router.delete("/{record_id}")
    def delete_record(
        request: Request,
        record_id: str,
        owner_id: Optional[str] = Query(default=None, alias="ownerId"),
    ) -> Dict[str, str]:
        validate_id(record_id, kind.label)
        owner_id = _require_owner(owner_id)
        authorize_owner(request, owner_id)
        store = get_store(request)
        if not store.delete(kind.name, record_id, owner_id):
            raise NotFoundError(not_found)
        for child in children:
            store.delete_where(child.name, owner_id, child.parent_field, record_id)
        return {"message": f"{kind.label} deleted successfully"}

    return router


def resource_routers() -> List[APIRouter]:
    return [build_resource_router(kind) for kind in RESOURCE_KINDS.values()]
