from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.provisioner.core.validators import MAX_IDENTIFIER_LENGTH, validate_subdomain
from src.provisioner.models import TenantStatus


class TenantCreate(BaseModel):
    subdomain: str = Field(
        min_length=1,
        max_length=MAX_IDENTIFIER_LENGTH,
        json_schema_extra={
            "examples": ["alice", "acme-corp", "shop42"],
            "description": "Single lowercase DNS label. Hyphens allowed, not at the ends.",
        },
    )

    @field_validator("subdomain", mode="before")
    @classmethod
    def normalize_subdomain(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("subdomain")
    @classmethod
    def validate_subdomain_format(cls, v: str) -> str:
        return validate_subdomain(v)


class TenantRead(BaseModel):
    id: UUID
    subdomain: str
    domain: str
    database_name: str
    url: str
    status: TenantStatus
    created_at: datetime
    updated_at: datetime
    activated_at: datetime | None = None
    error_message: str | None = None

    model_config = {"from_attributes": True}
