from fastapi import APIRouter, Depends, status, BackgroundTasks

from app.core.dependencies import get_current_account, get_role_registry
from app.models.role import RoleAssign, RoleAssignmentRead, BuyerRegistration
from app.services.role import RoleRegistry

router = APIRouter()


@router.post(
    "/buyers",
    response_model=RoleAssignmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register as Buyer",
    description="Self-service, one time: an account without a role becomes a Buyer. Fails if the caller already holds any role."
)
def register_as_buyer(
    data: BuyerRegistration,
    background_tasks: BackgroundTasks,
    current_account: str = Depends(get_current_account),
    service: RoleRegistry = Depends(get_role_registry)
):
    return service.register_as_buyer(current_account, data.display_name, background_tasks)


@router.get(
    "/{account}",
    response_model=RoleAssignmentRead,
    status_code=status.HTTP_200_OK,
    summary="Get Role",
    description="Returns the role and display name of any account. Unknown accounts report the 'none' role."
)
def get_role(
    account: str,
    service: RoleRegistry = Depends(get_role_registry)
):
    return service.get_role(account)


@router.put(
    "/{account}",
    response_model=RoleAssignmentRead,
    status_code=status.HTTP_200_OK,
    summary="Assign Role",
    description="Administrator only. Grants Producer or Transporter, or revokes with 'none'. Overwrites any previous role."
)
def assign_role(
    account: str,
    data: RoleAssign,
    background_tasks: BackgroundTasks,
    current_account: str = Depends(get_current_account),
    service: RoleRegistry = Depends(get_role_registry)
):
    return service.assign_role(
        current_account, account, data.role, data.display_name, background_tasks)
