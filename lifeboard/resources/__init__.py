"""Owner-scoped resource collections"""

from .models import RESOURCE_KINDS, ResourceKind
from .store import DocumentStore

__all__ = ["DocumentStore", "RESOURCE_KINDS", "ResourceKind"]
