from __future__ import annotations

from typing import Callable

from fastapi import Request, Response

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization,X-Amz-Date,X-Api-Key,X-Amz-Security-Token",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}


def apply_cors(response: Response) -> Response:
    for name, value in CORS_HEADERS.items():
        response.headers[name] = value
    return response


async def cors_middleware(request: Request, call_next: Callable[[Request], Response]) -> Response:
    # Pre-flight never reaches a route.
    if request.method == "OPTIONS":
        return apply_cors(Response(status_code=200))
    response = await call_next(request)
    return apply_cors(response)
