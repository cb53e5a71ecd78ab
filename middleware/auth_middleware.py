"""
Authentication middleware: rejects API requests that carry no session cookie.
This is an early check only; the session itself is validated by FastAPI dependencies.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import List

from core.logger import logger
import config

PROTECTED_PREFIX = "/api/"

# API routes reachable without a session
PUBLIC_ROUTES: List[str] = [
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/logout",
]


class AuthRequiredMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce authentication on API routes.

    Requests to ``/api/*`` without the session cookie get a 401 before routing.
    Everything else (docs, health, the WebSocket handshake) passes through.
    """

    def __init__(self, app, public_routes: List[str] = None, cookie_name: str = None):
        """
        Initialize authentication middleware.

        Args:
            app: FastAPI application
            public_routes: API paths that don't require auth
            cookie_name: Session cookie to look for
        """
        super().__init__(app)
        self.public_routes = public_routes or PUBLIC_ROUTES
        self.cookie_name = cookie_name or config.SESSION_COOKIE_NAME

    async def dispatch(self, request: Request, call_next):
        """Process request with authentication check."""
        path = request.url.path

        if not path.startswith(PROTECTED_PREFIX) or path in self.public_routes:
            return await call_next(request)

        # Allow OPTIONS for CORS preflight
        if request.method == "OPTIONS":
            return await call_next(request)

        if not request.cookies.get(self.cookie_name):
            logger.warning(f"Request without session cookie: {request.method} {path} from {request.client.host if request.client else 'unknown'}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Unauthorized"}
            )

        return await call_next(request)
