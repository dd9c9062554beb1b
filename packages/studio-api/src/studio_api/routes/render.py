"""Render request endpoint -- the quality gate is enforced here."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from qagate.guard import DenialKind, RenderGuard
from studio_api.auth import Caller, get_caller, verify_token
from studio_api.deps import get_guard

router = APIRouter(prefix="/api", tags=["render"])

_DENIAL_STATUS = {
    DenialKind.QUALITY_GATE: 400,
    DenialKind.AUTHORIZATION: 403,
}


class RenderRequest(BaseModel):
    force_render: bool = False


class RenderComplete(BaseModel):
    succeeded: bool = True


@router.post("/projects/{project_id}/render", dependencies=[Depends(verify_token)])
async def request_render(
    project_id: str,
    body: RenderRequest | None = None,
    guard: RenderGuard = Depends(get_guard),
    caller: Caller = Depends(get_caller),
):
    """Enqueue a render if the project passes the gate (or an admin forces it)."""
    force = body.force_render if body else False
    decision = await guard.request_render(
        project_id,
        caller_role=caller.role,
        force_render=force,
        caller_id=caller.user_id,
    )
    if decision.accepted:
        status = 200 if decision.already_rendering else 202
    else:
        status = _DENIAL_STATUS[decision.denial]
    return JSONResponse(status_code=status, content={"project_id": project_id, **decision.to_dict()})


@router.post("/renders/{render_id}/complete", dependencies=[Depends(verify_token)])
async def complete_render(
    render_id: str,
    body: RenderComplete,
    guard: RenderGuard = Depends(get_guard),
):
    """Render pipeline callback."""
    job = await guard.complete_render(render_id, succeeded=body.succeeded)
    return {
        "render_id": job.render_id,
        "project_id": job.project_id,
        "state": job.state,
        "forced": job.forced,
    }
