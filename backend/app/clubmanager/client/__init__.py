"""ClubManager API 客户端"""
from clubmanager.client.api_client import (
    ApiResponseError,
    AuthenticationRequired,
    ClientError,
    ClubApiClient,
    CsvDownload,
    NetworkError,
    SessionContext,
    UnexpectedResponseError,
)

__all__ = [
    "ApiResponseError",
    "AuthenticationRequired",
    "ClientError",
    "ClubApiClient",
    "CsvDownload",
    "NetworkError",
    "SessionContext",
    "UnexpectedResponseError",
]
