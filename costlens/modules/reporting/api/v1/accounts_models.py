from typing import Optional

from pydantic import Field

from costlens.modules.reporting.api.v1.costs_models import CamelModel


class AccountCreate(CamelModel):
    name: str = Field(min_length=1, max_length=128)
    # 12-digit AWS account number
    provider_account_id: str = Field(min_length=1, max_length=64)
    profile_name: Optional[str] = Field(default=None, max_length=128)


class AccountSettingsUpdate(CamelModel):
    budget: float = Field(ge=0)
    exchange_rate: float = Field(gt=0)
    # Omitted keeps the stored profile
    profile_name: Optional[str] = Field(default=None, max_length=128)


class AccountResponse(CamelModel):
    id: str
    name: str
    provider_account_id: str
    profile_name: Optional[str]
    budget: float
    exchange_rate: float
