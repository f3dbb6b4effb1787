import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from .event_processor import JoinRequestEventProcessor
from .schemas import TriggerEvent, TriggerResponse
from ..dependencies import get_event_processor

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/triggers', tags=["Triggers"])


@router.post('/join-requests', response_model=TriggerResponse)
async def handle_join_request_change(
    event: TriggerEvent,
    processor: Annotated[JoinRequestEventProcessor, Depends(get_event_processor)],
):
    """
    Receive a join_requests document change.
    Read or batch write failures are not caught so the delivery is retried.
    """
    result = await processor.process_event(event)
    if result is None:
        return TriggerResponse(status="skipped")
    return TriggerResponse(status="processed", result=result)
