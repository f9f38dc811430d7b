"""Response envelope returned by every tool call, success or failure."""

from __future__ import annotations

import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

SETUP_TOOL_NAME = "setup_wallet"
WALLET_STATUS_URI = "bitcoin://wallet/status"
NOT_INITIALIZED_TEXT = "Wallet is not initialized. Please set up a wallet first."


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class EmbeddedResource(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uri: str
    text: str
    mime_type: Optional[str] = Field(default=None, alias="mimeType")


class ResourceContent(BaseModel):
    type: Literal["resource"] = "resource"
    resource: EmbeddedResource


ContentItem = Annotated[Union[TextContent, ResourceContent], Field(discriminator="type")]


class SuggestedTool(BaseModel):
    name: str
    description: str


class SuggestedResource(BaseModel):
    uri: str
    description: str


class ResponseEnvelope(BaseModel):
    """Uniform response shape.

    Built fresh for each call. ``is_error`` stays ``None`` on success so that
    the wire form omits it, matching what agent hosts expect.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: List[ContentItem] = Field(default_factory=list)
    suggested_tools: Optional[List[SuggestedTool]] = Field(default=None, alias="suggestedTools")
    suggested_resources: Optional[List[SuggestedResource]] = Field(
        default=None, alias="suggestedResources"
    )
    is_error: Optional[bool] = Field(default=None, alias="isError")

    @property
    def failed(self) -> bool:
        return bool(self.is_error)

    def text(self) -> str:
        """Concatenate all text items (handy for logs and tests)."""
        return "\n".join(item.text for item in self.content if isinstance(item, TextContent))

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def text_response(
    text: str,
    *,
    tools: Optional[List[SuggestedTool]] = None,
    resources: Optional[List[SuggestedResource]] = None,
) -> ResponseEnvelope:
    return ResponseEnvelope(
        content=[TextContent(text=text)],
        suggested_tools=tools,
        suggested_resources=resources,
    )


def json_resource(uri: str, payload: Any) -> ResourceContent:
    return ResourceContent(
        resource=EmbeddedResource(
            uri=uri,
            text=json.dumps(payload, indent=2),
            mime_type="application/json",
        )
    )


def error_response(message: str, *, tools: Optional[List[SuggestedTool]] = None) -> ResponseEnvelope:
    return ResponseEnvelope(
        content=[TextContent(text=message)],
        suggested_tools=tools,
        is_error=True,
    )


def not_initialized_response() -> ResponseEnvelope:
    return ResponseEnvelope(
        content=[TextContent(text=NOT_INITIALIZED_TEXT)],
        suggested_tools=[
            SuggestedTool(name=SETUP_TOOL_NAME, description="Create or restore a Bitcoin wallet")
        ],
        suggested_resources=[
            SuggestedResource(uri=WALLET_STATUS_URI, description="Check wallet status")
        ],
        is_error=True,
    )
