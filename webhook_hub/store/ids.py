import uuid


def new_request_id() -> str:
    """Return a random 128-bit (122 bits of entropy) request id as hex."""
    return uuid.uuid4().hex
