"""
Small helpers shared by the resource routers.
"""

from typing import Any, Optional
import re

from fastapi import BackgroundTasks

from travel_cms.core import page_cache

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def to_int(value: Any, default: int) -> int:
    """Lenient integer parsing for form-ish payloads ("2", 2, "", None)."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed or default


def invalidate_later(background_tasks: BackgroundTasks, *routes: str) -> None:
    """Schedule cache invalidation to run after the response is sent."""
    background_tasks.add_task(page_cache.invalidate, list(routes))
