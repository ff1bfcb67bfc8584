"""Pydantic models shared by the query pipeline and the bot layer."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

MAX_RESULTS = 10

# Trimmed, non-empty search text.
Query = str


class OfferRecord(BaseModel):
    """One normalized shopping offer.

    Every field except ``title`` may be missing upstream; blanks render as
    empty strings or ``None`` instead of raising.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    price: str = ""
    thumbnail_url: str | None = None
    source_name: str | None = None


ResultSet = Annotated[list[OfferRecord], Field(max_length=MAX_RESULTS)]


class Loading(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["loading"] = "loading"
    query: Query


class Failed(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["failed"] = "failed"
    query: Query
    message: str
    error_kind: Literal["provider", "network", "config"]
    status: int | None = None
    body: str | None = None


class Succeeded(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: Literal["succeeded"] = "succeeded"
    query: Query
    results: ResultSet = Field(default_factory=list)


FetchOutcome = Annotated[Union[Loading, Failed, Succeeded], Field(discriminator="state")]


__all__ = [
    "MAX_RESULTS",
    "Failed",
    "FetchOutcome",
    "Loading",
    "OfferRecord",
    "Query",
    "ResultSet",
    "Succeeded",
]
