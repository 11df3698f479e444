from sqlmodel import SQLModel, Field
from app.db.schema import Role


class RoleAssignmentRead(SQLModel):
    account: str
    role: Role
    display_name: str


class RoleAssign(SQLModel):
    """
    Payload for the administrator to grant (or revoke, with 'none') a role.
    Buyers cannot be assigned here; they register themselves.
    """
    role: Role = Field(
        description="Role to grant: 'producer', 'transporter' or 'none'."
    )
    display_name: str = Field(
        max_length=100,
        schema_extra={"examples": ["Acme Freight"]},
        description="Name shown next to the account."
    )


class BuyerRegistration(SQLModel):
    display_name: str = Field(
        max_length=100,
        schema_extra={"examples": ["Jane's Store"]},
        description="Name shown next to the buyer account."
    )
