"""Tagged request messages accepted by the knowledge-store API."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class PageContentData(BaseModel):
    """Title and text produced by the content extractor for one page."""

    url: str
    title: str = ""
    text: str = ""
    favicon: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("url")
    @classmethod
    def _require_url(cls, value: str) -> str:
        if not (value or "").strip():
            raise ValueError("url is required")
        return value

    @field_validator("title", "text", "favicon", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class PageContentMessage(BaseModel):
    type: Literal["PAGE_CONTENT"]
    data: PageContentData

    model_config = ConfigDict(extra="ignore")


class SearchPagesMessage(BaseModel):
    type: Literal["SEARCH_PAGES"]
    query: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("query", mode="before")
    @classmethod
    def _none_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value


class GetAllPagesMessage(BaseModel):
    type: Literal["GET_ALL_PAGES"]

    model_config = ConfigDict(extra="ignore")


class GetStatsMessage(BaseModel):
    type: Literal["GET_STATS"]

    model_config = ConfigDict(extra="ignore")


class DeletePageMessage(BaseModel):
    type: Literal["DELETE_PAGE"]
    page_id: int = Field(validation_alias=AliasChoices("pageId", "page_id"))

    model_config = ConfigDict(extra="ignore")


class ClearAllMessage(BaseModel):
    type: Literal["CLEAR_ALL"]

    model_config = ConfigDict(extra="ignore")


Message = Annotated[
    Union[
        PageContentMessage,
        SearchPagesMessage,
        GetAllPagesMessage,
        GetStatsMessage,
        DeletePageMessage,
        ClearAllMessage,
    ],
    Field(discriminator="type"),
]

_MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)

MESSAGE_TYPES = (
    "PAGE_CONTENT",
    "SEARCH_PAGES",
    "GET_ALL_PAGES",
    "GET_STATS",
    "DELETE_PAGE",
    "CLEAR_ALL",
)


def parse_message(payload: Mapping[str, Any]) -> Message:
    """Validate ``payload`` into its message variant; raises ``ValidationError``."""

    return _MESSAGE_ADAPTER.validate_python(payload)


__all__ = [
    "ClearAllMessage",
    "DeletePageMessage",
    "GetAllPagesMessage",
    "GetStatsMessage",
    "MESSAGE_TYPES",
    "Message",
    "PageContentData",
    "PageContentMessage",
    "SearchPagesMessage",
    "parse_message",
]
