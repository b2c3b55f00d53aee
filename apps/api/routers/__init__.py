"""Routers package."""

from . import (
    health,
    feeds,
    ai,
    cron,
)
