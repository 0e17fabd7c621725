"""
API package: the TidalApi facade, its endpoint table and JSON:API models.
"""

from tidal_api.api.client import TidalApi
from tidal_api.api.endpoints import RESOURCES, ResourceSpec, build_endpoint_methods
from tidal_api.api.models import (
    Document,
    Relationship,
    Resource,
    ResourceIdentifier,
    ResourceType,
)

__all__ = [
    "TidalApi",
    "RESOURCES",
    "ResourceSpec",
    "build_endpoint_methods",
    "Document",
    "Resource",
    "ResourceIdentifier",
    "Relationship",
    "ResourceType",
]
