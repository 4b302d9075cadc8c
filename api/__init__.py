"""API modules for HTTP interface."""

from api.base import (
    APIResponse,
    success_response,
    error_response,
    ErrorCodes,
)
from api.app import build_services, create_app
