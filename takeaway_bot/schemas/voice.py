"""
Voice Schemas for Takeaway Bot
==============================

Pydantic models for the voice session endpoints. A speech front end posts
the recognized text for a caller and speaks back ``prompt_text``.

Stateless Clients:
------------------
Every response carries the caller's ``slots``. A client that cannot rely on
hitting the same server twice may send them back on the next request; they
are only applied when the server has no live session for that caller.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field

from ..config import MAX_UTTERANCE_LENGTH
from ..dialog.models import DialogResult, DialogState, SlotSnapshot


class VoiceTurnRequest(BaseModel):
    caller_id: str = Field(..., min_length=1, max_length=64)
    utterance_text: str = Field("", max_length=MAX_UTTERANCE_LENGTH)
    slots: Optional[SlotSnapshot] = None


class VoiceWakeRequest(BaseModel):
    metadata: Dict[str, str] = Field(default_factory=dict)


class VoiceTurnResponse(BaseModel):
    caller_id: str
    recognized_text: Optional[str] = None
    prompt_text: str
    dialog_state: DialogState
    is_session_complete: bool
    metadata: Dict[str, str] = Field(default_factory=dict)
    slots: SlotSnapshot

    @classmethod
    def from_result(
        cls,
        caller_id: str,
        result: DialogResult,
        recognized_text: Optional[str] = None,
    ) -> "VoiceTurnResponse":
        return cls(
            caller_id=caller_id,
            recognized_text=recognized_text,
            prompt_text=result.prompt_text,
            dialog_state=result.state,
            is_session_complete=result.is_session_complete,
            metadata=result.metadata,
            slots=result.slots,
        )
