# services/communication-service/app/services/letter_service.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from app.clients.blob_storage import ArtifactPublisher, get_artifact_publisher
from app.clients.member_data import MemberDataAggregator
from app.core.merge import render_document
from app.core.validation import validate_object_id
from app.dal.letter_dal import LetterDAL
from app.errors import NotFound, ValidationFailed
from app.events.rabbit import EventPublisher
from app.models import DownloadLink, GeneratedLetter, GenerateLetterResult, RequestContext
from app.services.field_catalog import FieldCatalogService, get_field_catalog
from app.services.template_service import TemplateService

logger = logging.getLogger("app.services.letters")


class LetterService:
    """
    Generate-letter pipeline:

      validate ids -> load template (tenant) -> fetch template bytes
        -> aggregate member data -> render -> publish artifact
        -> ledger entry -> signed URL

    Strictly linear, no retries. The ledger write is the last write; if it
    fails the freshly uploaded artifact is deleted (best effort) so no
    unreferenced letter is left behind silently.
    """

    def __init__(
        self,
        *,
        templates: Optional[TemplateService] = None,
        aggregator: Optional[MemberDataAggregator] = None,
        publisher: Optional[ArtifactPublisher] = None,
        ledger: Optional[LetterDAL] = None,
        catalog: Optional[FieldCatalogService] = None,
        events: Optional[EventPublisher] = None,
    ) -> None:
        self.templates = templates or TemplateService()
        self.aggregator = aggregator or MemberDataAggregator()
        self.publisher = publisher or get_artifact_publisher()
        self.ledger = ledger or LetterDAL()
        self.catalog = catalog or get_field_catalog()
        self.events = events or EventPublisher()

    async def generate(
        self,
        ctx: RequestContext,
        member_id: Optional[str],
        template_id: Optional[str],
    ) -> GenerateLetterResult:
        if not member_id or not template_id:
            raise ValidationFailed("memberId and templateId are required")
        validate_object_id(template_id, "templateId")
        validate_object_id(member_id, "memberId")

        t0 = time.perf_counter()
        template = await self.templates.load(ctx, template_id)
        template_bytes = await self.templates.gateway.fetch(template.file_ref)
        member_data = await self.aggregator.collect(member_id, await self.catalog.list_keys())
        rendered = render_document(template_bytes, member_data)
        artifact = await self.publisher.publish(ctx.tenant_id, member_id, rendered)
        published_at = datetime.now(timezone.utc)

        record = GeneratedLetter(
            member_id=member_id,
            template_id=template_id,
            file_name=artifact.file_name,
            artifact_path=artifact.path,
            content_type=artifact.content_type,
            tenant_id=ctx.tenant_id,
            created_by=ctx.user_id,
            created_at=published_at,
        )
        try:
            await self.ledger.create(record)
        except Exception:
            logger.exception("Ledger write failed; compensating artifact %s", artifact.path)
            if not await self.publisher.delete(artifact.path):
                logger.error("Orphaned artifact left in storage: %s", artifact.path)
            raise

        logger.info(
            "Letter generated letter_id=%s template_id=%s member_id=%s tenant_id=%s in %.3fs",
            record.id, template_id, member_id, ctx.tenant_id, time.perf_counter() - t0,
        )
        await self.events.emit(
            "letter.generated",
            {"letterId": record.id, "templateId": template_id, "memberId": member_id, "fileName": record.file_name},
            tenant_id=ctx.tenant_id,
            by=ctx.user_id,
            correlation_id=ctx.correlation_id,
        )
        return GenerateLetterResult(
            download_url=self.publisher.signed_url(artifact.path, now=published_at),
            letter_id=record.id,
            file_name=record.file_name,
        )

    async def list_for_member(self, ctx: RequestContext, member_id: str) -> List[GeneratedLetter]:
        validate_object_id(member_id, "memberId")
        return await self.ledger.list_for_member(ctx.tenant_id, member_id)

    async def download_url(self, ctx: RequestContext, letter_id: str) -> DownloadLink:
        """Mint a fresh signed URL from the stored path."""
        validate_object_id(letter_id, "letterId")
        record = await self.ledger.get(ctx.tenant_id, letter_id)
        if record is None:
            raise NotFound("Letter not found or access denied", details={"letterId": letter_id})
        now = datetime.now(timezone.utc)
        _, expires_at = self.publisher.validity_window(now)
        return DownloadLink(
            letter_id=record.id,
            download_url=self.publisher.signed_url(record.artifact_path, now=now),
            expires_at=expires_at,
        )
