"""FastAPI application for module management"""

import logging
from typing import Optional

from fastapi import FastAPI

from modhost import __version__
from modhost.core.modules.manager import ModuleManager
from modhost.webui.api import modules

logger = logging.getLogger(__name__)


def create_app(manager: Optional[ModuleManager] = None) -> FastAPI:
    """
    Build the API application

    Args:
        manager: Module manager to serve (default: one built from config)
    """
    app = FastAPI(title="ModHost", version=__version__)

    if manager is not None:
        modules.set_manager(manager)

    app.include_router(modules.router, tags=["modules"])
    logger.info("Module management API ready")
    return app
