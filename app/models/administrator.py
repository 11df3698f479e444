from sqlmodel import SQLModel, Field


class AdministratorRead(SQLModel):
    account: str


class AdministratorTransfer(SQLModel):
    new_administrator: str = Field(
        max_length=128,
        description="Account that receives the administrator privilege. The caller loses it immediately."
    )
