"""
Shared module - Base model and schema classes used by every feature module.
"""

from portal.modules.shared.models import BaseModel
from portal.modules.shared.schemas import CamelModel, MessageResponse

__all__ = ["BaseModel", "CamelModel", "MessageResponse"]
