"""
Application wiring: lifespan, CORS, security middlewares and error handlers.
"""

from .lifespan import lifespan
from .cors import configure_cors
from .middlewares import register_middlewares
from .errors import register_exception_handlers

__all__ = [
    "lifespan",
    "configure_cors",
    "register_middlewares",
    "register_exception_handlers",
]
