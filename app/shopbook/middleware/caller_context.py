from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.shopbook.core.context import build_request_context
from app.shopbook.core.security import decode_token


class CallerContextMiddleware(BaseHTTPMiddleware):
    """Best effort caller details for logging; authorization happens in the gate."""

    async def dispatch(self, request: Request, call_next):
        request.state.user_id = None
        request.state.roles = None
        request.state.staff_shop_id = None

        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.lower().startswith("bearer "):
            token = auth_header.split(" ", 1)[1]
            try:
                payload = decode_token(token)
            except JWTError:
                payload = {}
            request.state.user_id = payload.get("sub")
            request.state.roles = payload.get("roles")
            request.state.staff_shop_id = payload.get("staff_shop_id")

        request.state.context = build_request_context(
            user_id=request.state.user_id,
            roles=request.state.roles,
            staff_shop_id=request.state.staff_shop_id,
            trace_id=getattr(request.state, "trace_id", ""),
        )
        return await call_next(request)
