from enum import Enum

from pydantic_settings import BaseSettings
from dotenv import load_dotenv


load_dotenv()


class BuyerAssignmentPolicy(str, Enum):
    SELF_SERVICE = "self_service"      # Buyers claim products themselves
    ADMINISTRATOR = "administrator"    # The administrator assigns the buyer


class Settings(BaseSettings):
    app_name: str = "Supply Chain Tracker API"
    debug: bool = False
    database_url: str = "sqlite:///./supply_chain.db"
    host: str = "127.0.0.1"
    port: int = 8000
    secret_key: str = ""
    access_token_expire_minutes: int = 60
    allowed_hosts: str = ""
    bootstrap_administrator: str = ""
    buyer_assignment_policy: BuyerAssignmentPolicy = BuyerAssignmentPolicy.SELF_SERVICE
    log_file: str = "logs/application.log"
    log_level: str = "INFO"


settings = Settings()

if not settings.secret_key:
    raise RuntimeError("Secret key not configured.")
