"""
Data Models for the Copy Revision Engine
========================================

Pydantic models for generation requests, content payloads and results.
"""

from enum import Enum
from typing import Annotated, List, Optional, Literal, Union

from pydantic import BaseModel, Field, field_validator

from config import config


class GenerationMode(str, Enum):
    """What the caller wants done with the copy"""
    CREATE = "create"
    IMPROVE = "improve"
    ALTERNATIVE = "alternative"
    HEADLINE = "headline"
    HUMANIZE = "humanize"
    RESTYLE = "restyle"


class WordCountBand(str, Enum):
    """Preset length bands; CUSTOM defers to custom_word_count"""
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"
    CUSTOM = "custom"


class PromptStrength(str, Enum):
    """Escalation level of a revision prompt"""
    NORMAL = "normal"
    AGGRESSIVE = "aggressive"
    EMERGENCY = "emergency"


class StructureElement(BaseModel):
    """One entry of the requested output structure"""
    label: str = Field(..., description="Section label, e.g. 'Benefits'")
    word_count: Optional[int] = Field(default=None, ge=1, description="Target words for this section")


# ---------------------------------------------------------------------------
# Content payloads
# ---------------------------------------------------------------------------

class Section(BaseModel):
    """A titled block of prose paragraphs or bullet items"""
    title: str = ""
    body: List[str] = Field(default_factory=list)
    is_list: bool = Field(default=False, description="True when body came from listItems")


class PlainText(BaseModel):
    kind: Literal["plain"] = "plain"
    text: str = ""


class Structured(BaseModel):
    kind: Literal["structured"] = "structured"
    headline: str = ""
    sections: List[Section] = Field(default_factory=list)


class HeadlineList(BaseModel):
    kind: Literal["headlines"] = "headlines"
    headlines: List[str] = Field(default_factory=list)


ContentPayload = Annotated[Union[PlainText, Structured, HeadlineList], Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class GenerationRequest(BaseModel):
    """Immutable configuration for one top-level generation call"""

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "mode": "create",
                "model": "gpt-4o",
                "business_description": "A meal-kit service for busy parents",
                "target_audience": "Working parents aged 30-45",
                "tone": "Friendly",
                "word_count": "custom",
                "custom_word_count": 250,
                "output_structure": [
                    {"label": "Hero Section", "word_count": 80},
                    {"label": "Benefits", "word_count": 170},
                ],
                "persona": "Marie Forleo",
                "strict_adherence": True,
            }
        },
    }

    mode: GenerationMode = Field(default=GenerationMode.CREATE)
    model: str = Field(default_factory=lambda: config.DEFAULT_MODEL, description="Catalogue model name")
    language: str = Field(default="English")
    tone: str = Field(default="Professional")
    tone_level: Optional[int] = Field(default=None, ge=0, le=100, description="0 = very formal, 100 = casual")

    business_description: str = ""
    original_copy: str = ""
    section: Optional[str] = Field(default=None, description="Page section the copy is for, e.g. 'Hero Section'")
    target_audience: str = ""
    key_message: str = ""
    call_to_action: str = ""
    desired_emotion: str = ""
    brand_values: str = ""
    keywords: str = ""
    context: str = ""
    industry_niche: str = ""
    product_service_name: str = ""
    reader_funnel_stage: str = ""
    competitor_urls: List[str] = Field(default_factory=list)
    competitor_copy_text: str = ""
    target_audience_pain_points: str = ""
    preferred_writing_style: str = ""
    language_style_constraints: List[str] = Field(default_factory=list)

    persona: Optional[str] = Field(default=None, description="Voice to emulate, e.g. 'Seth Godin'")
    output_structure: List[StructureElement] = Field(default_factory=list)

    word_count: WordCountBand = Field(default=WordCountBand.MEDIUM)
    custom_word_count: Optional[int] = Field(default=None, ge=1)
    tolerance_percent: float = Field(
        default_factory=lambda: config.DEFAULT_TOLERANCE_PERCENT,
        ge=0.0,
        le=100.0,
        description="Allowed undershoot in percent before revision",
    )
    strict_adherence: bool = Field(default=False, description="Run the revision escalator when the draft is short")
    force_keyword_integration: bool = False
    force_elaborations_examples: bool = False
    num_headlines: int = Field(default_factory=lambda: config.DEFAULT_NUM_HEADLINES, ge=1)

    @field_validator("persona")
    @classmethod
    def _blank_persona_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @property
    def expects_structured(self) -> bool:
        return bool(self.output_structure)


# ---------------------------------------------------------------------------
# Diagnostics and results
# ---------------------------------------------------------------------------

class PromptPair(BaseModel):
    system_prompt: str
    user_prompt: str


class RevisionContext(BaseModel):
    """Everything a prompt strengthener needs to build one revision prompt"""

    model_config = {"frozen": True}

    request: GenerationRequest
    content: ContentPayload
    current_word_count: int
    target_word_count: int
    attempt_number: int = Field(..., ge=1, le=3)
    strength: PromptStrength
    expected_kind: Optional[str] = Field(
        default=None,
        description="Payload shape the revision must return; derived from content when unset",
    )
    force_elaborations_examples: bool = False
    force_keyword_integration: bool = False

    @property
    def delta(self) -> int:
        """Signed words missing; negative when the copy is over target"""
        return self.target_word_count - self.current_word_count


class RevisionAttempt(BaseModel):
    """One link of the revision chain"""

    model_config = {"frozen": True}

    attempt_number: int = Field(..., ge=1, le=3)
    prompt_strength: PromptStrength
    result_payload: ContentPayload
    result_word_count: int = Field(..., ge=0)
    accepted: bool


class GenerationResult(BaseModel):
    """Final content plus diagnostics for a top-level call"""

    model_config = {"frozen": True}

    content: ContentPayload
    attempts_used: int = Field(default=0, ge=0, description="Revision calls issued after the draft")
    final_word_count: int = Field(..., ge=0)
    within_tolerance: bool
    target_word_count: int = Field(..., ge=0)
    prompts: PromptPair = Field(..., description="Last composed prompt pair")
    attempts: List[RevisionAttempt] = Field(default_factory=list)
    persona_used: Optional[str] = None


class PromptEvaluation(BaseModel):
    """Quality score for the input a request would be generated from"""

    model_config = {"frozen": True}

    score: int = Field(..., ge=0, le=100)
    tips: List[str] = Field(default_factory=list, description="Concrete ways to improve the input")
