"""Search backend channels, their payloads and collaborator contracts."""

from .http_clients import ChannelHTTPError, SearchAPIClient, SupabaseRpcClient
from .protocols import (
    FallbackSearchChannel,
    LocationProvider,
    PrimarySearchChannel,
    SpeechRecognitionService,
    StaticLocationProvider,
)
from .schemas import (
    FallbackSearchResponse,
    FoodItemRecord,
    PrimarySearchResponse,
    RpcParams,
    SearchItemDTO,
)

__all__ = [
    "ChannelHTTPError",
    "SearchAPIClient",
    "SupabaseRpcClient",
    "FallbackSearchChannel",
    "LocationProvider",
    "PrimarySearchChannel",
    "SpeechRecognitionService",
    "StaticLocationProvider",
    "FallbackSearchResponse",
    "FoodItemRecord",
    "PrimarySearchResponse",
    "RpcParams",
    "SearchItemDTO",
]
