"""FastAPI routes for inspecting applications and binding community config."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException

from api.schemas import (
    ApplicationList,
    ApplicationOut,
    CatalogOut,
    ConfigValueReq,
    ExpireReq,
    ExpireResp,
    QuestionOut,
)
from config.community import CommunityConfig, ConfigField
from observability import log_event
from storage.applications import ApplicationStore
from storage.community_config import CommunityConfigStore
from whitelist.catalog import DEFAULT_CATALOG
from whitelist.expiry import expire_idle
from whitelist.models import ApplicationStatus


router = APIRouter(prefix="/api")


def _listing(items) -> ApplicationList:
    out = [ApplicationOut.from_application(app) for app in items]
    return ApplicationList(items=out, count=len(out))


@router.get("/applications/{application_id}", response_model=ApplicationOut)
def get_application(application_id: str) -> ApplicationOut:
    app = ApplicationStore().get(application_id)
    if app is None:
        raise HTTPException(status_code=404, detail="application not found")
    return ApplicationOut.from_application(app)


@router.get("/communities/{community_id}/applications", response_model=ApplicationList)
def list_community_applications(
    community_id: str, status: Optional[ApplicationStatus] = None
) -> ApplicationList:
    return _listing(ApplicationStore().list_for_community(community_id, status=status))


@router.get(
    "/communities/{community_id}/applicants/{applicant_id}/applications",
    response_model=ApplicationList,
)
def list_applicant_applications(community_id: str, applicant_id: str) -> ApplicationList:
    return _listing(ApplicationStore().list_for_applicant(community_id, applicant_id))


@router.post("/applications/expire-stale", response_model=ExpireResp)
def expire_stale(req: Optional[ExpireReq] = None) -> ExpireResp:
    ttl_hours = req.ttl_hours if req else None
    expired = expire_idle(ApplicationStore(), ttl_hours=ttl_hours)
    return ExpireResp(expired=[app.id for app in expired], count=len(expired))


@router.get("/catalog", response_model=CatalogOut)
def get_catalog() -> CatalogOut:
    questions = [
        QuestionOut(
            step=index,
            key=q.key,
            label=q.label,
            prompt=q.prompt,
            max_length=q.max_length,
            identifier=q.identifier,
        )
        for index, q in enumerate(DEFAULT_CATALOG)
    ]
    return CatalogOut(version=DEFAULT_CATALOG.version, questions=questions)


@router.get("/communities/{community_id}/config", response_model=CommunityConfig)
def get_config(community_id: str) -> CommunityConfig:
    return CommunityConfigStore().get(community_id)


@router.put("/communities/{community_id}/config/{field}", response_model=CommunityConfig)
def put_config_field(community_id: str, field: ConfigField, req: ConfigValueReq) -> CommunityConfig:
    try:
        cfg = CommunityConfigStore().set_field(community_id, field, req.value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    log_event("config_updated", None, community=community_id, action=field.value)
    return cfg
