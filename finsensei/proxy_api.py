"""
Pass-through proxy for the upstream backend. Must be included after every
concrete /api/... route so it only catches what nothing else handles.
"""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from finsensei.services.proxy import UpstreamProxy
from finsensei.utils import get_logger

logger = get_logger(__name__)

proxy_router = APIRouter(tags=["proxy"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def get_proxy(request: Request) -> UpstreamProxy:
    return request.app.state.proxy


@proxy_router.api_route("/api/{path:path}", methods=["GET", "POST", "PUT", "DELETE"])
async def proxy_request(path: str, request: Request, proxy: UpstreamProxy = Depends(get_proxy)):
    """Forward to the upstream API; the upstream status code is not passed on"""
    try:
        body = await request.body() if request.method != "GET" else None
        data = await proxy.forward(
            request.method,
            path,
            request.headers,
            body=body,
            query=request.url.query
        )
    except Exception as e:
        logger.error(f"API Error: {e}")
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    return JSONResponse(status_code=200, content=data, headers=CORS_HEADERS)


@proxy_router.options("/api/{path:path}")
async def proxy_preflight(path: str):
    return Response(status_code=204, headers=CORS_HEADERS)
