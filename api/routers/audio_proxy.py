from __future__ import annotations

from typing import Optional

import httpx
from fastapi import APIRouter, HTTPException, Query, Request
from starlette.responses import StreamingResponse

from app.core.logging import get_logger
from services.audio_proxy_service import is_proxyable_url, open_audio_stream

logger = get_logger().bind(module="audio_proxy")

router = APIRouter(tags=["audio"])


@router.get("/audioproxy/")
async def audio_proxy(
    request: Request,
    url: Optional[str] = Query(None, description="Upstream audio URL (http or https)."),
) -> StreamingResponse:
    if not is_proxyable_url(url):
        raise HTTPException(status_code=400, detail="A valid http(s) audio url is required.")
    try:
        return await open_audio_stream(
            url,
            range_header=request.headers.get("range"),
            settings=request.app.state.settings,
        )
    except httpx.HTTPError as exc:
        logger.warning("audio_proxy_upstream_failed", url=url, error=str(exc))
        raise HTTPException(status_code=502, detail="Audio source unreachable.") from exc
