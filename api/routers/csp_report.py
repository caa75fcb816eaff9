from __future__ import annotations

import json

from fastapi import APIRouter, Request, Response

from app.core.logging import get_logger
from app.core.security_headers import CSP_REPORT_PATH

logger = get_logger().bind(module="csp_report")

router = APIRouter(tags=["security"])

# Browsers post reports as application/csp-report, newer ones as application/reports+json
_JSON_TYPES = ("json", "application/csp-report")


@router.post(CSP_REPORT_PATH, status_code=204)
async def report_violation(request: Request) -> Response:
    content_type = request.headers.get("content-type", "").lower()
    raw = await request.body()

    report = None
    if raw and any(t in content_type for t in _JSON_TYPES):
        try:
            report = json.loads(raw)
        except ValueError:
            logger.warning("csp_violation_unparseable", size=len(raw))

    if report:
        logger.warning("csp_violation", report=report)
    else:
        logger.warning("csp_violation_empty")
    return Response(status_code=204)
