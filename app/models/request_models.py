"""Request models for the Guild Apply API."""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, field_validator

from app.models.response_models import Embed


class SubmissionMeta(BaseModel):
    """Client-side metadata sent alongside the form."""

    model_config = ConfigDict(extra="ignore")

    ts: Optional[Union[int, float, str]] = Field(
        default=None,
        description="Client timestamp (ISO-8601 string or epoch milliseconds)",
    )


class ApplySubmission(BaseModel):
    """Guild application as posted by the website form.

    Every field is lenient on input: strings are stripped, single values are
    promoted to lists where a sequence is expected, and legacy key names are
    accepted. Whether the submission is *complete* is decided later by the
    validation stage, not here.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    turnstile_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("turnstileToken", "cf-turnstile-response", "turnstile_token"),
        description="Cloudflare Turnstile widget token",
    )

    character: Optional[str] = Field(default=None, examples=["Thrall"])
    realm: Optional[str] = Field(default=None, examples=["Stormrage"])
    btag: Optional[str] = Field(default=None, description="BattleTag", examples=["Thrall#1234"])
    classes: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("classes", "class"),
    )
    roles: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("roles", "role"),
    )
    rio: Optional[str] = Field(default=None, description="Raider.IO profile URL")
    wcl: Optional[str] = Field(default=None, description="Warcraft Logs profile URL")
    availability: Optional[str] = None
    notes: Optional[str] = None
    consent: StrictBool = False

    discord: Optional[str] = Field(default=None, description="Discord handle as typed")
    discord_id_guess: Optional[str] = None
    discord_username_guess: Optional[str] = None

    website: Optional[str] = Field(default=None, description="Honeypot; must stay empty")

    # Legacy path: the client renders the Discord message itself.
    content: Optional[str] = None
    embeds: Optional[list[Embed]] = None

    meta: Optional[SubmissionMeta] = None

    @field_validator(
        "turnstile_token", "character", "realm", "btag", "rio", "wcl",
        "availability", "notes", "discord", "discord_id_guess",
        "discord_username_guess", "website", "content",
        mode="before",
    )
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("expected text")
        if isinstance(value, (int, float)):
            value = str(value)
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("classes", "roles", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple)):
            return [str(v).strip() for v in value if v is not None and str(v).strip()]
        return value

    @field_validator("consent", mode="before")
    @classmethod
    def _consent(cls, value: Any) -> Any:
        return False if value is None else value
