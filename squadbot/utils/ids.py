import re
import secrets

ID_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ID_LENGTH = 8

_ID_PATTERN = re.compile(r"^[A-Z0-9]{8}$")


def generate_id() -> str:
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


def is_valid_id(value: str) -> bool:
    return bool(_ID_PATTERN.match(value or ""))
