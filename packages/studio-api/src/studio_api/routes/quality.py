"""Quality report and scene review endpoints."""
from __future__ import annotations

import logging
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from qagate.audit import AuditEntry
from qagate.classifier import classify_scene
from qagate.guard import RenderGuard
from qagate.models import SceneAnalysis, SceneIssue, IssueSeverity, ThresholdPolicy
from qagate.store import QAStore
from qagate import transitions
from studio_api.auth import Caller, get_caller, verify_token
from studio_api.deps import get_guard, get_policy, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["quality"])


class IssueIn(BaseModel):
    severity: str = "minor"
    description: str = ""


class AnalysisIn(BaseModel):
    """Result of the external scene analysis step."""
    overall_score: float = Field(ge=0, le=100)
    recommendation: Literal["approved", "needs_review", "regenerate"] = "needs_review"
    issues: list[IssueIn] = Field(default_factory=list)
    user_approved: bool = False


class RejectBody(BaseModel):
    reason: str = "User rejected"


def _record_out(record) -> dict:
    return {
        "scene_id": record.scene_id,
        "status": record.status.value,
        "overall_score": record.overall_score,
        "critical_issues": record.critical_issues,
        "major_issues": record.major_issues,
        "minor_issues": record.minor_issues,
        "user_approved": record.user_approved,
        "auto_approved": record.auto_approved,
        "regeneration_count": record.regeneration_count,
    }


@router.get("/{project_id}/quality-report", dependencies=[Depends(verify_token)])
async def quality_report(project_id: str, guard: RenderGuard = Depends(get_guard)):
    """Recompute the project's QA report from its current scene records."""
    report = await guard.load_report(project_id)
    return {"project_id": project_id, **report.to_dict()}


@router.get("/{project_id}/can-render", dependencies=[Depends(verify_token)])
async def can_render(project_id: str, guard: RenderGuard = Depends(get_guard)):
    report = await guard.load_report(project_id)
    return {
        "project_id": project_id,
        "can_render": report.can_render,
        "blocking_reasons": report.blocking_reasons,
    }


@router.put("/{project_id}/scenes/{scene_id}/analysis", dependencies=[Depends(verify_token)])
async def store_analysis(
    project_id: str,
    scene_id: str,
    body: AnalysisIn,
    store: QAStore = Depends(get_store),
    policy: ThresholdPolicy = Depends(get_policy),
):
    """Classify an analysis result and store it as the scene's QA record."""
    previous = {r.scene_id: r for r in (await store.load_records(project_id) or [])}
    analysis = SceneAnalysis(
        scene_id=scene_id,
        overall_score=body.overall_score,
        recommendation=body.recommendation,
        issues=tuple(
            SceneIssue(severity=IssueSeverity.parse(i.severity), description=i.description)
            for i in body.issues
        ),
    )
    regenerations = previous[scene_id].regeneration_count if scene_id in previous else 0
    record = classify_scene(
        analysis, policy, user_approved=body.user_approved, regeneration_count=regenerations
    )
    await store.save_record(project_id, record)
    logger.info("Scene %s/%s analyzed: %s (%s)", project_id, scene_id, record.status.value, record.overall_score)
    return _record_out(record)


@router.post("/{project_id}/scenes/{scene_id}/approve", dependencies=[Depends(verify_token)])
async def approve_scene(project_id: str, scene_id: str, store: QAStore = Depends(get_store)):
    record = await store.update_record(project_id, scene_id, transitions.approve)
    return _record_out(record)


@router.post("/{project_id}/scenes/{scene_id}/reject", dependencies=[Depends(verify_token)])
async def reject_scene(
    project_id: str,
    scene_id: str,
    body: RejectBody,
    store: QAStore = Depends(get_store),
    guard: RenderGuard = Depends(get_guard),
    caller: Caller = Depends(get_caller),
):
    record = await store.update_record(project_id, scene_id, transitions.reject)
    await guard.audit.log(AuditEntry(
        action="scene.rejected",
        actor=caller.user_id or caller.role,
        project_id=project_id,
        details={"scene_id": scene_id, "reason": body.reason},
    ))
    return {**_record_out(record), "reason": body.reason}


@router.post("/{project_id}/scenes/{scene_id}/regenerate", dependencies=[Depends(verify_token)])
async def regenerate_scene(project_id: str, scene_id: str, store: QAStore = Depends(get_store)):
    """Send a rejected scene back to pending; the regeneration itself runs elsewhere."""
    record = await store.update_record(project_id, scene_id, transitions.request_regeneration)
    return _record_out(record)


@router.post("/{project_id}/approve-all", dependencies=[Depends(verify_token)])
async def approve_all(project_id: str, store: QAStore = Depends(get_store)):
    approved = await store.update_all(project_id, transitions.approve_if_needs_review)
    return {"project_id": project_id, "approved_count": approved}


@router.post("/{project_id}/auto-approve", dependencies=[Depends(verify_token)])
async def auto_approve(
    project_id: str,
    store: QAStore = Depends(get_store),
    policy: ThresholdPolicy = Depends(get_policy),
):
    approved = await store.update_all(
        project_id, lambda r: transitions.auto_approve_if_eligible(r, policy)
    )
    return {"project_id": project_id, "approved_count": approved}
