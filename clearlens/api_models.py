"""
Request and response models for the ClearLens API.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from clearlens.api_exceptions import ValidationError


# ══════════════════════════════════════════════
# REQUEST MODELS
# ══════════════════════════════════════════════

class ChatTurn(BaseModel):
    """One prior conversation turn, most-recent-last."""
    role: str
    text: str = ""


class Feedback(BaseModel):
    """Thumbs up / down on the previous answer."""
    rating: Optional[str] = None

    @field_validator("rating", mode="before")
    @classmethod
    def known_rating(cls, v):
        return v if v in ("positive", "negative") else None


def _as_bag(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value.strip() else None


def _as_history(value: Any) -> List[ChatTurn]:
    turns = []
    for item in value if isinstance(value, list) else []:
        if not isinstance(item, dict):
            continue
        role, text = item.get("role"), item.get("text")
        if role in ("user", "assistant") and isinstance(text, str):
            turns.append(ChatTurn(role=role, text=text))
    return turns


def _as_hour(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        hour = int(value)
    except (TypeError, ValueError):
        return None
    return hour if 0 <= hour <= 23 else None


class InsightRequest(BaseModel):
    """POST /api/insight body. Every bag is optional and partial."""
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "userId": "u_123",
                "question": "What should I eat for dinner?",
                "lens": "practical",
                "metrics": {"dietaryProteinG": 40, "proteinTargetG": 150},
                "preferences": {"pressure": 2, "tone": "sharp"},
                "chatHistory": [{"role": "user", "text": "roast me"}],
            }
        },
    )

    user_id: str = Field(..., alias="userId", min_length=1)
    question: str = Field(..., min_length=1, max_length=4000)
    lens: Optional[str] = None
    birth_date: Optional[str] = Field(None, alias="birthDate")
    birth_time: Optional[str] = Field(None, alias="birthTime")
    birth_place: Optional[str] = Field(None, alias="birthPlace")
    metrics: Dict[str, Any] = Field(default_factory=dict)
    profile: Dict[str, Any] = Field(default_factory=dict)
    preferences: Dict[str, Any] = Field(default_factory=dict)
    trends: Dict[str, Any] = Field(default_factory=dict)
    chat_history: List[ChatTurn] = Field(default_factory=list, alias="chatHistory")
    is_voice_input: bool = Field(False, alias="isVoiceInput")
    feedback: Optional[Feedback] = None
    local_hour: Optional[int] = Field(None, alias="localHour", ge=0, le=23)

    @classmethod
    def from_body(cls, body: Any) -> "InsightRequest":
        """
        Build a request from an untrusted JSON body.

        Only the question and user id can fail the request; every other field
        degrades to "unknown".
        """
        body = body if isinstance(body, dict) else {}

        question = body.get("question")
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("Question is required", field="question")
        user_id = body.get("userId")
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("userId is required", field="userId")
        if len(question.strip()) > 4000:
            raise ValidationError("Question is too long", field="question")

        feedback = body.get("feedback")
        return cls(
            userId=user_id.strip(),
            question=question.strip(),
            lens=_as_text(body.get("lens")),
            birthDate=_as_text(body.get("birthDate")),
            birthTime=_as_text(body.get("birthTime")),
            birthPlace=_as_text(body.get("birthPlace")),
            metrics=_as_bag(body.get("metrics")),
            profile=_as_bag(body.get("profile")),
            preferences=_as_bag(body.get("preferences")),
            trends=_as_bag(body.get("trends")),
            chatHistory=_as_history(body.get("chatHistory")),
            isVoiceInput=body.get("isVoiceInput") is True,
            feedback=Feedback(rating=feedback.get("rating")) if isinstance(feedback, dict) else None,
            localHour=_as_hour(body.get("localHour")),
        )


# ══════════════════════════════════════════════
# RESPONSE MODELS
# ══════════════════════════════════════════════

class InsightResponse(BaseModel):
    """Successful answer; debug fields only outside production."""
    model_config = ConfigDict(populate_by_name=True)

    insight: str
    debug_metrics: Optional[Dict[str, str]] = Field(None, alias="debugMetrics")
    debug_signals: Optional[Dict[str, Any]] = Field(None, alias="debugSignals")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    error_code: str
    details: Optional[Dict[str, Any]] = None


class HealthCheckResponse(BaseModel):
    status: str = "healthy"
    timestamp: str
