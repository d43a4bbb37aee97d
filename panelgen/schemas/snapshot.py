from pydantic import BaseModel
from typing import Optional, Dict, Any


class ImportRequest(BaseModel):
    snapshot: Optional[Dict[str, Any]] = None


class ImportResponse(BaseModel):
    success: bool
    message: str
