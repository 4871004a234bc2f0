from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

OPTIONS_PER_QUESTION = 4
LANGUAGES = ("en", "ne")


class Option(BaseModel):
    """Answer choice: plain text, or text paired with an image."""

    text: str = Field(
        default="",
        description="Option text (may be empty when only an image is shown)"
    )
    image: Optional[str] = Field(
        None,
        description="Option image URL"
    )

    model_config = {"frozen": True}


class Question(BaseModel):
    """
    Theory exam question.
    Pydantic v2 model; read-only from the exam's point of view.
    """
    id: str = Field(
        ...,
        min_length=1,
        description="Opaque unique identifier"
    )
    language: Literal["en", "ne"] = Field(
        ...,
        description="Language tag"
    )
    question_text: Optional[str] = Field(
        None,
        description="Prompt text (None when the prompt is an image)"
    )
    question_image_url: Optional[str] = Field(
        None,
        description="Prompt image URL (None when the prompt is text)"
    )
    options: List[Option] = Field(
        ...,
        description="Exactly four answer options"
    )
    correct_index: int = Field(
        ...,
        ge=0,
        description="Zero-based index of the correct option"
    )
    category: Optional[str] = Field(
        None,
        description="Category tag (e.g. traffic signs)"
    )

    model_config = {"frozen": True}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        # store rows may carry integer or uuid ids
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("options", mode="before")
    @classmethod
    def coerce_options(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [{"text": o} if isinstance(o, str) else o for o in v]
        return v

    @field_validator("options")
    @classmethod
    def validate_options_length(cls, v: List[Option]) -> List[Option]:
        if len(v) != OPTIONS_PER_QUESTION:
            raise ValueError(
                f"options must contain exactly {OPTIONS_PER_QUESTION} items (got {len(v)})"
            )
        return v

    @model_validator(mode="after")
    def validate_prompt_and_answer(self) -> "Question":
        """
        Exactly one of question_text / question_image_url is populated,
        and correct_index points into options.
        """
        has_text = bool(self.question_text)
        has_image = bool(self.question_image_url)
        if has_text == has_image:
            raise ValueError("exactly one of question_text or question_image_url must be set")
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correct_index {self.correct_index} out of range for {len(self.options)} options"
            )
        return self

    def public_dict(self) -> Dict[str, Any]:
        """Examinee-facing view; never includes the correct answer."""
        return {
            "id": self.id,
            "language": self.language,
            "question_text": self.question_text,
            "question_image_url": self.question_image_url,
            "options": [o.model_dump() for o in self.options],
            "category": self.category,
        }
