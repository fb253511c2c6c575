"""Platform adapters for external identity APIs."""

from app.adapters.base import ProfileGateway
from app.adapters.line_profile import LineProfileGateway

__all__ = ["ProfileGateway", "LineProfileGateway"]
