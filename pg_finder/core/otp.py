import secrets
import string


def generate_otp(length: int = 6) -> str:
    """Generate a cryptographically secure random numeric code of the given length"""
    return ''.join(secrets.choice(string.digits) for _ in range(length))
