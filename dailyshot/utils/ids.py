import time
import uuid


def new_id(prefix: str) -> str:
    """Time-ordered readable ID, e.g. ``post_1760871234567_3f9a1c2b7``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
