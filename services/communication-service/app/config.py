# services/communication-service/app/config.py
from __future__ import annotations
import os
from typing import List
from urllib.parse import urlsplit

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Identity
    service_name: str = os.getenv("SERVICE_NAME", "communication-service")
    service_version: str = os.getenv("SERVICE_VERSION", "1.0.0")
    environment: str = os.getenv("ENVIRONMENT", "production")  # "development" exposes error detail
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Mongo
    mongo_uri: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    mongo_db: str = os.getenv("MONGO_DB", "communication-service")

    # RabbitMQ
    rabbitmq_uri: str = os.getenv("RABBITMQ_URI", "")
    rabbitmq_exchange: str = os.getenv("RABBITMQ_EXCHANGE", "communication.events")
    user_events_exchange: str = os.getenv("USER_EVENTS_EXCHANGE", "user.events")
    user_events_queue: str = os.getenv("USER_EVENTS_QUEUE", "communication.user.events")
    user_events_prefetch: int = int(os.getenv("USER_EVENTS_PREFETCH", "10"))
    events_org: str = os.getenv("EVENTS_ORG", "membership")

    # Upstream member-record services
    profile_service_url: str = os.getenv("PROFILE_SERVICE_URL", "http://profile-service")
    subscription_service_url: str = os.getenv("SUBSCRIPTION_SERVICE_URL", "http://subscription-service")
    account_service_url: str = os.getenv("ACCOUNT_SERVICE_URL", "http://account-service")
    allowed_service_hosts: str = os.getenv("ALLOWED_SERVICE_HOSTS", "")
    member_data_timeout_seconds: float = float(os.getenv("MEMBER_DATA_TIMEOUT_SECONDS", "10"))

    # HTTP client
    http_client_timeout_seconds: float = float(
        os.getenv("HTTP_CLIENT_TIMEOUT_SECONDS", "30")
    )

    # Microsoft Graph (document repository)
    graph_tenant_id: str = os.getenv("GRAPH_TENANT_ID", "")
    graph_client_id: str = os.getenv("GRAPH_CLIENT_ID", "")
    graph_client_secret: str = os.getenv("GRAPH_CLIENT_SECRET", "")
    graph_authority_host: str = os.getenv("GRAPH_AUTHORITY_HOST", "https://login.microsoftonline.com")
    graph_base_url: str = os.getenv("GRAPH_BASE_URL", "https://graph.microsoft.com/v1.0")
    graph_scope: str = os.getenv("GRAPH_SCOPE", "https://graph.microsoft.com/.default")
    graph_drive_id: str = os.getenv("GRAPH_DRIVE_ID", "")
    graph_templates_folder: str = os.getenv("GRAPH_TEMPLATES_FOLDER", "Templates")
    graph_token_safety_margin_seconds: int = int(os.getenv("GRAPH_TOKEN_SAFETY_MARGIN_SECONDS", "300"))

    # Azure Blob Storage (artifacts)
    azure_storage_account: str = os.getenv("AZURE_STORAGE_ACCOUNT", "")
    azure_storage_key: str = os.getenv("AZURE_STORAGE_KEY", "")
    azure_storage_container: str = os.getenv("AZURE_STORAGE_CONTAINER", "generated-letters")
    signed_url_ttl_seconds: int = int(os.getenv("SIGNED_URL_TTL_SECONDS", "3600"))

    # Field catalog
    field_catalog_cache_ttl_seconds: float = float(os.getenv("FIELD_CATALOG_CACHE_TTL_SECONDS", "300"))

    # HTTP surface
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "*")

    # Seeding
    seed_fields: bool = os.getenv("SEED_FIELDS", "1") in ("1", "true", "True")

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @property
    def is_development(self) -> bool:
        return self.environment.strip().lower() == "development"

    @property
    def member_service_hosts(self) -> List[str]:
        """
        Allow-list for outbound member-data calls: explicit ALLOWED_SERVICE_HOSTS
        plus the hosts of the configured upstream URLs.
        """
        hosts = [h.strip().lower() for h in self.allowed_service_hosts.split(",") if h.strip()]
        for url in (self.profile_service_url, self.subscription_service_url, self.account_service_url):
            host = urlsplit(url).hostname
            if host and host.lower() not in hosts:
                hosts.append(host.lower())
        return hosts

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


settings = Settings()
