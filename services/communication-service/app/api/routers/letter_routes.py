# services/communication-service/app/api/routers/letter_routes.py
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.api.deps import get_letter_service, get_request_context
from app.api.responses import success
from app.models import GenerateLetterRequest, RequestContext
from app.services.letter_service import LetterService

router = APIRouter(prefix="/api/letters", tags=["letters"])


@router.post("/generate", status_code=201)
async def generate_letter(
    body: GenerateLetterRequest,
    ctx: RequestContext = Depends(get_request_context),
    svc: LetterService = Depends(get_letter_service),
) -> Dict[str, Any]:
    result = await svc.generate(ctx, body.member_id, body.template_id)
    return success(result.model_dump(by_alias=True), "Letter generated successfully")


@router.get("/member/{member_id}")
async def list_member_letters(
    member_id: str,
    ctx: RequestContext = Depends(get_request_context),
    svc: LetterService = Depends(get_letter_service),
) -> Dict[str, Any]:
    letters = await svc.list_for_member(ctx, member_id)
    return success({"letters": [l.model_dump(mode="json") for l in letters]}, "Letters retrieved successfully")


@router.get("/{letter_id}/download")
async def letter_download_url(
    letter_id: str,
    ctx: RequestContext = Depends(get_request_context),
    svc: LetterService = Depends(get_letter_service),
) -> Dict[str, Any]:
    link = await svc.download_url(ctx, letter_id)
    return success(link.model_dump(mode="json", by_alias=True), "Download link generated")
