from fastapi import Request

from .catalog import CatalogStore
from .config import Settings
from .ledger import OrderLedger
from .metrics import MetricsRecorder
from .placement import OrderPlacementCoordinator


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_catalog(request: Request) -> CatalogStore:
    return request.app.state.catalog


def get_ledger(request: Request) -> OrderLedger:
    return request.app.state.ledger


def get_coordinator(request: Request) -> OrderPlacementCoordinator:
    return request.app.state.coordinator


def get_metrics(request: Request) -> MetricsRecorder:
    return request.app.state.metrics
