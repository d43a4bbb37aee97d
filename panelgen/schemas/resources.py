from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class GenerateResourceRequest(BaseModel):
    # loosely typed so every problem is reported together by build_descriptor
    resourceName: Optional[Any] = Field(None, examples=["Cases"])
    fields: Optional[Any] = Field(None, examples=[[{"name": "title", "type": "String", "required": True}]])
    resourceType: Optional[Any] = None
    menuItem: Optional[Any] = Field(None, examples=[{"label": "Cases", "url": "/cases"}])
    structure: Optional[Any] = None


class GenerateResourceResponse(BaseModel):
    success: bool
    message: str
    resourceName: str
    endpoints: Dict[str, str]
