"""
Pydantic schemas for the Generation Engine
"""
import base64
import binascii
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from designchain.core.exceptions import ErrorKind


class ImageBlob(BaseModel):
    """Inline image: mime type plus base64 payload"""

    mime_type: str = "image/jpeg"
    data: str  # base64, no data URL prefix

    class Config:
        json_schema_extra = {"example": {"mime_type": "image/png", "data": "iVBORw0KGgo..."}}

    @classmethod
    def from_bytes(cls, raw: bytes, mime_type: str = "image/jpeg") -> "ImageBlob":
        return cls(mime_type=mime_type, data=base64.b64encode(raw).decode("utf-8"))

    @classmethod
    def from_data_url(cls, value: str, default_mime_type: str = "image/jpeg") -> "ImageBlob":
        """Accept ``data:<mime>;base64,<payload>`` or a bare base64 string"""
        if value.startswith("data:") and "," in value:
            header, payload = value.split(",", 1)
            mime_type = header[len("data:") :].split(";")[0] or default_mime_type
            return cls(mime_type=mime_type, data=payload)
        return cls(mime_type=default_mime_type, data=value)

    def to_bytes(self) -> bytes:
        try:
            return base64.b64decode(self.data, validate=False)
        except (binascii.Error, ValueError):
            return b""

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class Turn(BaseModel):
    """One unit of model input: text plus an optional inline image"""

    text: str
    image: Optional[ImageBlob] = None


class ItemDescriptor(BaseModel):
    """One item recovered from a design description"""

    name: str
    quantity: int = Field(default=1, ge=1)
    description: str = ""
    long_description: str = Field(default="", alias="longDescription")

    class Config:
        populate_by_name = True


class InteriorDescription(BaseModel):
    """Structured description of an interior: overview plus item inventory"""

    overview: str
    items: List[ItemDescriptor] = Field(default_factory=list)


class ProductQuery(BaseModel):
    """Item to resolve into a purchasable product"""

    name: str
    quantity: int = Field(default=1, ge=1)
    description: str = ""


class ProductItem(BaseModel):
    """Priced, sourced product record"""

    item_name: str
    description: str = ""
    quantity: int = Field(default=1, ge=1)
    unit_price: float = Field(default=0.0, ge=0.0)
    total_price: float = Field(default=0.0, ge=0.0)
    source_link: str = ""


class BudgetStatus(BaseModel):
    """Comparison of a product total against a user budget"""

    budget: float
    total_cost: float
    remaining: float
    over_budget: bool


class ProductSearchResult(BaseModel):
    """Products found for an inventory, with their summed cost"""

    items: List[ProductItem] = Field(default_factory=list)
    total_cost: float = Field(default=0.0, ge=0.0)

    def budget_status(self, budget: float) -> BudgetStatus:
        remaining = round(budget - self.total_cost, 2)
        return BudgetStatus(
            budget=budget,
            total_cost=self.total_cost,
            remaining=remaining,
            over_budget=remaining < 0,
        )


class SceneArtifact(BaseModel):
    """Navigable 3-D scene document"""

    html: str
    kind: Literal["assembled", "document", "raw"]
    code: Optional[str] = None  # generated fragment when kind == "assembled"


class ImageSearchHit(BaseModel):
    """One image returned by the custom search API"""

    title: str = ""
    link: str
    mime: str = ""
    thumbnail_link: str = ""
    context_link: str = ""
    width: int = 0
    height: int = 0


class ChainRequest(BaseModel):
    """Input to one run of the generation chain"""

    base_image: ImageBlob
    reference_image: Optional[ImageBlob] = None
    requested_items: List[str] = Field(default_factory=list)
    structured_reference: Optional[bool] = None  # None -> settings default
    resolve_products: Optional[bool] = None  # None -> settings default
    budget: Optional[float] = Field(default=None, ge=0.0)


class ChainSucceeded(BaseModel):
    """Terminal state: image generated, products optionally resolved"""

    status: Literal["succeeded"] = "succeeded"
    image: ImageBlob
    prompt: str
    reference_description: Union[InteriorDescription, str]
    inventory: Optional[InteriorDescription] = None
    products: Optional[ProductSearchResult] = None
    budget: Optional[BudgetStatus] = None
    warnings: List[str] = Field(default_factory=list)


class ChainFailed(BaseModel):
    """Terminal state: a required stage failed"""

    status: Literal["failed"] = "failed"
    error: str
    kind: ErrorKind
    stage: str


PipelineResult = Union[ChainSucceeded, ChainFailed]
