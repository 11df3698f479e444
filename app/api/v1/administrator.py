from fastapi import APIRouter, Depends, status, BackgroundTasks

from app.core.dependencies import get_current_account, get_ownership_guard
from app.models.administrator import AdministratorRead, AdministratorTransfer
from app.services.ownership import OwnershipGuard

router = APIRouter()


@router.get("/", response_model=AdministratorRead, status_code=status.HTTP_200_OK)
def get_administrator(guard: OwnershipGuard = Depends(get_ownership_guard)):
    return AdministratorRead(account=guard.current_administrator())


@router.put(
    "/",
    response_model=AdministratorRead,
    status_code=status.HTTP_200_OK,
    summary="Transfer Administrator",
    description="Hands the administrator privilege to another account. The caller loses it immediately."
)
def transfer_administrator(
    data: AdministratorTransfer,
    background_tasks: BackgroundTasks,
    current_account: str = Depends(get_current_account),
    guard: OwnershipGuard = Depends(get_ownership_guard)
):
    account = guard.transfer_administrator(
        current_account, data.new_administrator, background_tasks)
    return AdministratorRead(account=account)
