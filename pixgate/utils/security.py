import base64

def basic_auth_header(secret: str) -> str:
    # Payevo: secret key as username, "x" as password
    token = base64.b64encode(f"{secret}:x".encode("utf-8")).decode("ascii")
    return f"Basic {token}"

def mask_secret(value: str | None) -> str:
    if not value:
        return ""
    return value[:4] + "***" if len(value) > 8 else "***"
