"""
Pydantic schemas for npm registry payloads
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class PackageDescriptor(BaseModel):
    """
    Package entry as returned by the registry search endpoint.

    Only ``name`` and ``date`` (the publish date of the version the search
    index saw) are used by the pipeline; everything else is kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    version: Optional[str] = None
    description: Optional[str] = None
    date: datetime


class SearchObject(BaseModel):
    """One hit in a search response"""

    model_config = ConfigDict(extra="allow")

    package: PackageDescriptor


class SearchResponse(BaseModel):
    """One page of ``/-/v1/search`` results"""

    model_config = ConfigDict(extra="allow")

    objects: List[SearchObject] = Field(default_factory=list)
    total: int = 0
