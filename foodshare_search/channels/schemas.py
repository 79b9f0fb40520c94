"""Payload models for the two search backends."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from foodshare_search.models import Query, SearchResultItem


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SearchItemDTO(_Payload):
    """Item returned by the search service."""
    id: int
    title: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    images: List[str] = []
    post_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("post_type", "postType")
    )
    distance_meters: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("distance_meters", "distanceMeters")
    )

    @field_validator("images", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []

    def to_result_item(self) -> SearchResultItem:
        return SearchResultItem(
            id=self.id,
            title=self.title or "Untitled",
            description=self.description,
            latitude=self.latitude,
            longitude=self.longitude,
            images=list(self.images),
            distance_meters=self.distance_meters,
            post_type=self.post_type or "food",
        )


class PrimarySearchResponse(_Payload):
    """Response of the search service."""
    items: List[SearchItemDTO] = []
    total_count: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("total_count", "totalCount")
    )
    has_more: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("has_more", "hasMore")
    )


class FoodItemRecord(_Payload):
    """Row returned by the search_food_items RPC."""
    id: int
    post_name: str
    post_description: Optional[str] = None
    post_type: str = "food"
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    images: List[str] = []
    category_id: Optional[int] = None
    distance_meters: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("images", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []

    def to_result_item(self) -> SearchResultItem:
        return SearchResultItem(
            id=self.id,
            title=self.post_name,
            description=self.post_description,
            latitude=self.latitude,
            longitude=self.longitude,
            images=list(self.images),
            distance_meters=self.distance_meters,
            post_type=self.post_type,
            category_id=self.category_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class FallbackSearchResponse(_Payload):
    """Response of the search_food_items RPC."""
    items: List[FoodItemRecord] = []
    total_count: int = 0
    category_breakdown: Dict[str, int] = {}
    has_more: bool = False

    @field_validator("category_breakdown", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or {}


class RpcParams(BaseModel):
    """Parameters of the search_food_items RPC.

    Optional parameters are sent as explicit nulls.
    """
    p_latitude: float
    p_longitude: float
    p_radius_km: float
    p_search_query: Optional[str] = None
    p_category_id: Optional[int] = None
    p_post_type: Optional[str] = None
    p_available_only: bool = True
    p_arranged_only: bool = False
    p_sort_by: str = "distance"
    p_limit: int = 100
    p_offset: int = 0

    @classmethod
    def from_query(cls, query: Query) -> 'RpcParams':
        return cls(
            p_latitude=query.origin.latitude,
            p_longitude=query.origin.longitude,
            p_radius_km=query.radius_km,
            p_search_query=query.text or None,
            p_category_id=query.category_id,
            p_post_type=query.post_type,
            p_available_only=query.available_only,
            p_arranged_only=query.arranged_only,
            p_sort_by=query.sort.value,
            p_limit=query.limit,
            p_offset=query.offset,
        )
