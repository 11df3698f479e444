import re
from typing import Optional

_ZERO_ACCOUNT = re.compile(r'^(0x)?0+$', re.IGNORECASE)


def is_null_account(account: Optional[str]) -> bool:
    """
    True for identifiers that cannot name a real account.
    Example: '', '  ', '0', '0x0000000000000000000000000000000000000000'
    """
    if account is None:
        return True
    account = account.strip()
    return not account or bool(_ZERO_ACCOUNT.match(account))


def normalize_account(account: str) -> str:
    return account.strip()
