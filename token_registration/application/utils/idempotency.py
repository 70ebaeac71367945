import uuid


def new_idempotency_key() -> str:
    return str(uuid.uuid4())
