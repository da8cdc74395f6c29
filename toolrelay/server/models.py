"""Pydantic request/response models for the toolrelay API."""

from typing import Any, Optional, Union

from pydantic import BaseModel


class QueryRequest(BaseModel):
    query: Optional[str] = None


class QueryResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    error: str


class ToolInfoModel(BaseModel):
    name: str
    description: str
    inputSchema: dict


class ToolCallRequest(BaseModel):
    name: str
    arguments: Optional[Union[dict[str, Any], str]] = None


class ToolCallResponse(BaseModel):
    content: list[dict]
    isError: bool
    errorCode: Optional[str] = None
