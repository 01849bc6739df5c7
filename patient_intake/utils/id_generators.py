# patient_intake/utils/id_generators.py
import secrets
import time


def generate_unique_id(padding: int = 7) -> str:
    """
    Generate a unique id in the backend's format: {seconds}{micros}{random}

    Where:
    - {seconds} = unix seconds, hex (8 chars)
    - {micros} = microseconds within that second, hex, zero-padded (5 chars)
    - {random} = `padding` random hex chars

    Example: 671385c70b2a44f3e9d1c (20 chars with the default padding).
    Ids sort roughly by creation time and stay within the backend's
    36-char limit of [a-zA-Z0-9._-].
    """
    now = time.time()
    seconds = int(now)
    micros = int((now - seconds) * 1_000_000)
    stamp = f"{seconds:08x}{micros:05x}"

    if padding <= 0:
        return stamp
    return stamp + secrets.token_hex((padding + 1) // 2)[:padding]


def generate_request_id() -> str:
    """Client request id handed out with a fresh registration form."""
    return secrets.token_urlsafe(16)
