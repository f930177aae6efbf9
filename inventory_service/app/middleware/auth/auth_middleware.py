from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ...core.setting import get_settings
from ...utils.jwt_handler import JWTHandler, TokenData
from ...utils.logging import setup_inventory_logging

logger = setup_inventory_logging("inventory_service.auth")

DEFAULT_EXCLUDE_PATHS = ["/health", "/docs", "/redoc", "/openapi.json"]


class InventoryServiceAuthMiddleware(BaseHTTPMiddleware):
    """Authenticate requests with the bearer token or auth cookie."""

    def __init__(self, app: Any, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or DEFAULT_EXCLUDE_PATHS
        settings = get_settings()
        self.jwt_handler = JWTHandler(
            secret_key=settings.SECRET_KEY, algorithm=settings.ALGORITHM
        )

    def _should_skip_auth(self, path: str) -> bool:
        return any(path.startswith(exclude_path) for exclude_path in self.exclude_paths)

    @staticmethod
    def _extract_token(request: Request) -> Optional[str]:
        authorization = request.headers.get("Authorization", "")
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return request.cookies.get("auth_token") or request.cookies.get("access_token")

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if self._should_skip_auth(request.url.path):
            return await call_next(request)

        correlation_id = request.headers.get("X-Correlation-ID", "unknown")
        token = self._extract_token(request)
        if not token:
            return self._unauthorized(request, correlation_id, "missing_token")

        try:
            token_data: TokenData = self.jwt_handler.decode_token(token)
        except ValueError as e:
            logger.warning(
                f"JWT validation failed: {str(e)}",
                extra={
                    "correlation_id": correlation_id,
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            return self._unauthorized(request, correlation_id, "invalid_token")

        request.state.user_id = token_data.user_id
        request.state.user_role = token_data.role
        request.state.token_data = token_data
        return await call_next(request)

    @staticmethod
    def _unauthorized(
        request: Request, correlation_id: str, reason: str
    ) -> JSONResponse:
        logger.warning(
            f"Authentication failed: {reason}",
            extra={
                "correlation_id": correlation_id,
                "path": request.url.path,
                "method": request.method,
                "reason": reason,
            },
        )
        return JSONResponse(
            status_code=401,
            content={
                "error": {
                    "type": "authentication_error",
                    "message": "Authentication required",
                    "correlation_id": correlation_id,
                    "details": {"reason": reason},
                }
            },
        )


class AuthenticatedUser:
    """Dependency to get authenticated user info from request."""

    def __init__(self, required_role: Optional[str] = None):
        self.required_role = required_role

    async def __call__(self, request: Request) -> Dict[str, Any]:
        user_id = getattr(request.state, "user_id", None)
        user_role = getattr(request.state, "user_role", None)

        if not user_id:
            raise HTTPException(status_code=401, detail="Authentication required")

        if self.required_role and user_role != self.required_role:
            raise HTTPException(
                status_code=403, detail=f"Required role: {self.required_role}"
            )

        return {"user_id": user_id, "role": user_role}


def setup_inventory_auth_middleware(
    app: FastAPI, exclude_paths: Optional[list[str]] = None
) -> None:
    """Setup authentication middleware for the Inventory Service."""
    exclude_paths = exclude_paths or DEFAULT_EXCLUDE_PATHS
    app.add_middleware(InventoryServiceAuthMiddleware, exclude_paths=exclude_paths)
    logger.info(
        "Inventory Service authentication middleware configured",
        extra={"excluded_paths": exclude_paths},
    )


authenticated_user = AuthenticatedUser()
admin_user = AuthenticatedUser(required_role="admin")
