"""
Scheduled job triggers
"""

import hmac
from typing import Any, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, status

from quickseats.api.deps import get_sweeper
from quickseats.config import settings
from quickseats.schemas.order import SweepReportResponse
from quickseats.services.sweeper import ReservationSweeper

router = APIRouter()


def verify_cron_secret(authorization: Optional[str] = Header(None)):
    """
    Require ``Authorization: Bearer <CRON_SECRET>`` when a secret is configured
    """
    if not settings.CRON_SECRET:
        return
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron credentials",
        )


@router.get(
    "/cleanup-pending-seats",
    response_model=SweepReportResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def cleanup_pending_seats(sweeper: ReservationSweeper = Depends(get_sweeper)) -> Any:
    """
    Release seats whose hold has expired
    """
    report = await sweeper.sweep()
    return SweepReportResponse(
        examined=report.examined,
        released=report.released,
        skipped=report.skipped,
        failed=report.failed,
        details=report.details,
    )
