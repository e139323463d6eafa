from typing import Annotated

import httpx
from fastapi import Depends, Request

from .config import Settings
from .services.admission import AdmissionRegistry
from .storage.provider import StorageProvider


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageProvider:
    return request.app.state.disk_manager


def get_admission_registry(request: Request) -> AdmissionRegistry:
    return request.app.state.admission


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


SettingsDep = Annotated[Settings, Depends(get_settings)]
StorageDep = Annotated[StorageProvider, Depends(get_storage)]
AdmissionDep = Annotated[AdmissionRegistry, Depends(get_admission_registry)]
HttpClientDep = Annotated[httpx.AsyncClient, Depends(get_http_client)]
