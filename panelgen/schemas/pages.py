from pydantic import BaseModel
from typing import Optional, Dict, Any, List


class PageWrite(BaseModel):
    """Body of page writes. Unset keys keep their stored value on update."""
    title: Optional[str] = None
    blocks: Optional[List[Any]] = None
    structure: Optional[Dict[str, Any]] = None
