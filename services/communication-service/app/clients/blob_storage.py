# services/communication-service/app/clients/blob_storage.py
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobSasPermissions, ContentSettings, generate_blob_sas
from azure.storage.blob.aio import BlobServiceClient

from app.config import settings
from app.core.merge import DOCX_CONTENT_TYPE
from app.core.validation import validate_object_id
from app.errors import PublishFailed

logger = logging.getLogger("app.clients.blob_storage")

_TENANT_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")


@dataclass(frozen=True)
class PublishedArtifact:
    path: str
    file_name: str
    content_type: str


def build_artifact_path(tenant_id: str, member_id: str, *, letter_uuid: Optional[uuid.UUID] = None) -> PublishedArtifact:
    """
    `{tenant}/{member}/letter-{uuid}.docx`. The uuid, not caller input, makes
    the path unique; tenant and member are restricted to safe alphabets.
    """
    if not isinstance(tenant_id, str) or not _TENANT_RE.fullmatch(tenant_id):
        raise PublishFailed(f"Refusing unsafe tenant id {tenant_id!r} in artifact path")
    validate_object_id(member_id, "memberId")
    file_name = f"letter-{letter_uuid or uuid.uuid4()}.docx"
    return PublishedArtifact(
        path=f"{tenant_id}/{member_id}/{file_name}",
        file_name=file_name,
        content_type=DOCX_CONTENT_TYPE,
    )


class ArtifactPublisher:
    """
    Uploads rendered letters to Azure Blob Storage and mints read-only SAS
    links. Links are never stored; call `signed_url` again whenever one is
    needed.
    """

    def __init__(
        self,
        *,
        container_client: Optional[Any] = None,
        account_name: Optional[str] = None,
        account_key: Optional[str] = None,
        container_name: Optional[str] = None,
        url_ttl_seconds: Optional[int] = None,
    ) -> None:
        self.account_name = account_name or settings.azure_storage_account
        self.account_key = account_key or settings.azure_storage_key
        self.container_name = container_name or settings.azure_storage_container
        self.url_ttl = timedelta(seconds=url_ttl_seconds or settings.signed_url_ttl_seconds)
        self._container = container_client
        self._service: Optional[BlobServiceClient] = None

    @property
    def account_url(self) -> str:
        return f"https://{self.account_name}.blob.core.windows.net"

    def _container_client(self) -> Any:
        if self._container is None:
            if not self.account_name or not self.account_key:
                raise PublishFailed("Azure Storage credentials missing (AZURE_STORAGE_ACCOUNT / AZURE_STORAGE_KEY)")
            self._service = BlobServiceClient(account_url=self.account_url, credential=self.account_key)
            self._container = self._service.get_container_client(self.container_name)
        return self._container

    async def publish(self, tenant_id: str, member_id: str, content: bytes) -> PublishedArtifact:
        artifact = build_artifact_path(tenant_id, member_id)
        blob = self._container_client().get_blob_client(artifact.path)
        try:
            await blob.upload_blob(
                content,
                overwrite=False,
                content_settings=ContentSettings(content_type=artifact.content_type),
            )
        except AzureError as exc:
            logger.error("Artifact upload failed path=%s: %s", artifact.path, exc)
            raise PublishFailed(f"Artifact upload failed: {exc}") from exc
        logger.info("Artifact uploaded path=%s (%d bytes)", artifact.path, len(content))
        return artifact

    async def delete(self, path: str) -> bool:
        """Best-effort removal; used only to compensate a failed ledger write."""
        blob = self._container_client().get_blob_client(path)
        try:
            await blob.delete_blob()
        except ResourceNotFoundError:
            return False
        except AzureError:
            logger.warning("Artifact delete failed path=%s", path, exc_info=True)
            return False
        logger.info("Artifact deleted path=%s", path)
        return True

    def signed_url(self, path: str, *, now: Optional[datetime] = None) -> str:
        start, expiry = self.validity_window(now)
        sas = generate_blob_sas(
            account_name=self.account_name,
            container_name=self.container_name,
            blob_name=path,
            account_key=self.account_key,
            permission=BlobSasPermissions(read=True),
            start=start,
            expiry=expiry,
        )
        return f"{self.account_url}/{self.container_name}/{path}?{sas}"

    def validity_window(self, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
        start = now or datetime.now(timezone.utc)
        return start, start + self.url_ttl

    async def close(self) -> None:
        if self._service is not None:
            await self._service.close()
            self._service = None
            self._container = None


_publisher: Optional[ArtifactPublisher] = None


def get_artifact_publisher() -> ArtifactPublisher:
    global _publisher
    if _publisher is None:
        _publisher = ArtifactPublisher()
    return _publisher


async def close_artifact_publisher() -> None:
    global _publisher
    if _publisher is not None:
        await _publisher.close()
        _publisher = None
