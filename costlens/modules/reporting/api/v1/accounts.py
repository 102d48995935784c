from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from costlens.modules.reporting.api.v1.accounts_models import (
    AccountCreate,
    AccountResponse,
    AccountSettingsUpdate,
)
from costlens.modules.reporting.api.v1.costs import get_cost_store
from costlens.modules.reporting.domain.persistence import SQLAlchemyCostStore

router = APIRouter(tags=["Accounts"])


@router.get("", response_model=list[AccountResponse])
async def list_accounts(
    store: SQLAlchemyCostStore = Depends(get_cost_store),
) -> list[AccountResponse]:
    return [AccountResponse.model_validate(asdict(a)) for a in await store.list_accounts()]


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def add_account(
    payload: AccountCreate,
    store: SQLAlchemyCostStore = Depends(get_cost_store),
) -> AccountResponse:
    account = await store.add_account(
        payload.name, payload.provider_account_id, payload.profile_name
    )
    return AccountResponse.model_validate(asdict(account))


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account_settings(
    account_id: str,
    payload: AccountSettingsUpdate,
    store: SQLAlchemyCostStore = Depends(get_cost_store),
) -> AccountResponse:
    """Budget and exchange rate feed the dashboard and the forecast budget line."""
    account = await store.update_account_settings(
        account_id,
        budget=payload.budget,
        exchange_rate=payload.exchange_rate,
        profile_name=payload.profile_name,
    )
    return AccountResponse.model_validate(asdict(account))
