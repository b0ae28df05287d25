# Storefront HTTP API.
# Created: 2026-10-19
#
# Routers are mounted under /api by mount_routers(app).

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)

_ROUTERS: list[tuple[str, str]] = [
    # (module_path, tag)
    ("storefront.api.auth", "Auth"),
    ("storefront.api.account", "Account"),
    ("storefront.api.health", "Health"),
]


def mount_routers(app: FastAPI) -> None:
    """Mount every API router on *app* at ``/api``."""
    import importlib

    for module_path, tag in _ROUTERS:
        mod = importlib.import_module(module_path)
        app.include_router(mod.router, prefix="/api")
        logger.debug("Mounted router: %s (%s)", module_path, tag)
