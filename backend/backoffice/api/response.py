import uuid

from fastapi import Request


def _meta(request: Request, **extra: object) -> dict:
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    return {"request_id": request_id, **extra}


def envelope(request: Request, data: object, message: str | None = None) -> dict:
    payload: dict = {"success": True, "data": data, "meta": _meta(request)}
    if message is not None:
        payload["message"] = message
    return payload


def paginated(request: Request, items: list, *, page: int, limit: int, total: int, **extra: object) -> dict:
    total_pages = (total + limit - 1) // limit if limit else 0
    data = {
        "items": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": total_pages,
            "hasNext": page < total_pages,
            "hasPrev": page > 1,
        },
        **extra,
    }
    return envelope(request, data)


def exception_envelope(request: Request, status_code: int, message: str, code: str, details: dict | None = None) -> dict:
    return {
        "success": False,
        "error": message,
        "code": code,
        "details": details or {},
        "meta": _meta(request, status_code=status_code),
    }
