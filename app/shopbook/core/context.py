from dataclasses import dataclass

from fastapi import Request


@dataclass(frozen=True)
class RequestContext:
    user_id: str | None
    roles: tuple[str, ...]
    staff_shop_id: str | None
    trace_id: str


def build_request_context(
    *,
    user_id: str | None,
    roles: list[str] | tuple[str, ...] | None,
    staff_shop_id: str | None,
    trace_id: str,
) -> RequestContext:
    return RequestContext(
        user_id=user_id,
        roles=tuple(roles or ()),
        staff_shop_id=staff_shop_id,
        trace_id=trace_id,
    )


def get_request_context(request: Request) -> RequestContext:
    context = getattr(request.state, "context", None)
    if isinstance(context, RequestContext):
        return context
    return build_request_context(
        user_id=getattr(request.state, "user_id", None),
        roles=getattr(request.state, "roles", None),
        staff_shop_id=getattr(request.state, "staff_shop_id", None),
        trace_id=getattr(request.state, "trace_id", ""),
    )
