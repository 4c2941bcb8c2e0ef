import os
from typing import Dict, Optional


def get_token() -> Optional[str]:
    # CANVAS_API_TOKEN wins over the older TOKEN name
    return os.getenv("CANVAS_API_TOKEN") or os.getenv("TOKEN")


def get_headers(token: str) -> Dict[str, str]:
    if not token:
        raise ValueError("Canvas API token is empty")

    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json",
    }
