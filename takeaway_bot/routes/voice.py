"""
Voice Routes for Takeaway Bot
=============================

Endpoints used by the speech front end. Speech-to-text and text-to-speech
happen on the other side; these routes exchange text only.

Endpoints:
----------
- POST /voice/session: Send a caller utterance, get the next prompt
- POST /voice/session/{caller_id}/timeout: Caller went quiet
- POST /voice/session/{caller_id}/wake: Replay the last prompt, merging metadata
- DELETE /voice/session/{caller_id}: Hang up / forget the session

Rate Limiting:
--------------
Utterances are rate limited per client address (default: 30/minute).
"""

import logging

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import RATE_LIMIT_ENABLED, get_rate_limit_voice
from ..dependencies import get_voice_service
from ..dialog.service import VoiceDialogService
from ..schemas.voice import VoiceTurnRequest, VoiceTurnResponse, VoiceWakeRequest

logger = logging.getLogger(__name__)

voice_router = APIRouter(prefix="/voice", tags=["Voice"])

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)


@voice_router.post("/session", response_model=VoiceTurnResponse)
@limiter.limit(get_rate_limit_voice)
async def voice_turn(
    request: Request,
    req: VoiceTurnRequest,
    service: VoiceDialogService = Depends(get_voice_service),
) -> VoiceTurnResponse:
    """Handle one caller utterance."""
    result = await service.handle_utterance(req.caller_id, req.utterance_text, req.slots)
    return VoiceTurnResponse.from_result(req.caller_id, result, recognized_text=req.utterance_text)


@voice_router.post("/session/{caller_id}/timeout", response_model=VoiceTurnResponse)
async def voice_timeout(
    caller_id: str,
    service: VoiceDialogService = Depends(get_voice_service),
) -> VoiceTurnResponse:
    """Nudge a caller who has not said anything."""
    result = await service.handle_timeout(caller_id)
    return VoiceTurnResponse.from_result(caller_id, result)


@voice_router.post("/session/{caller_id}/wake", response_model=VoiceTurnResponse)
async def voice_wake(
    caller_id: str,
    req: VoiceWakeRequest,
    service: VoiceDialogService = Depends(get_voice_service),
) -> VoiceTurnResponse:
    """Replay the last prompt without a new utterance."""
    result = await service.handle_system(caller_id, req.metadata)
    return VoiceTurnResponse.from_result(caller_id, result)


@voice_router.delete("/session/{caller_id}", status_code=204)
def voice_end(
    caller_id: str,
    service: VoiceDialogService = Depends(get_voice_service),
) -> None:
    service.end_session(caller_id)
    logger.info("Voice session ended for %s", caller_id)
