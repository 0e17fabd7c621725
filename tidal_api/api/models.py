"""
Typed models for TIDAL JSON:API responses

The v2 API answers with JSON:API documents:

    {
        "data": {"id": "...", "type": "albums", "attributes": {...},
                 "relationships": {"artists": {"data": [...], "links": {...}}}},
        "included": [{"id": "...", "type": "artists", ...}],
        "links": {"self": "...", "next": "..."}
    }

These dataclasses give those documents a typed shape. They are chosen at the
call site through the ``model`` argument of the facade methods:

    document = api.get_album('251380836', 'US', {'include': 'artists'}, model=Document)
    album = document.data
    for artist_ref in album.relationship_ids('artists'):
        artist = document.find_included(artist_ref.type, artist_ref.id)

Every resource object is tagged by its ``type`` string; ``Resource.kind``
maps the tag onto ResourceType when the library knows it, and stays None
for types added to the API later.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ResourceType(Enum):
    """Resource type tags used by the v2 API."""
    ALBUMS = "albums"
    ARTISTS = "artists"
    ARTIST_ROLES = "artistRoles"
    PROVIDERS = "providers"
    TRACKS = "tracks"
    VIDEOS = "videos"
    PLAYLISTS = "playlists"
    SEARCH_RESULTS = "searchresults"
    USERS = "users"
    USER_ENTITLEMENTS = "userEntitlements"
    USER_PUBLIC_PROFILES = "userPublicProfiles"
    USER_RECOMMENDATIONS = "userRecommendations"
    ARTWORKS = "artworks"

    @classmethod
    def from_tag(cls, tag: str) -> Optional["ResourceType"]:
        """Return the enum member for a type tag, or None for unknown tags."""
        try:
            return cls(tag)
        except ValueError:
            return None


@dataclass(frozen=True)
class ResourceIdentifier:
    """
    Reference to a resource by type and id (JSON:API resource linkage)

    Attributes:
        id: Resource id
        type: Resource type tag
        meta: Optional linkage metadata (e.g. volume/track numbers for album items)
    """
    id: str
    type: str
    meta: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "ResourceIdentifier":
        return cls(
            id=str(data.get('id', '')),
            type=data.get('type', ''),
            meta=data.get('meta') or {},
        )


@dataclass
class Relationship:
    """
    One named relationship of a resource

    Attributes:
        data: Linked identifiers; a single identifier, a list, or None when not included
        links: Relationship links (self/next)
        meta: Relationship metadata
    """
    data: Union[ResourceIdentifier, List[ResourceIdentifier], None] = None
    links: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "Relationship":
        linkage = data.get('data')
        if isinstance(linkage, list):
            parsed = [ResourceIdentifier.from_api_data(item) for item in linkage]
        elif isinstance(linkage, dict):
            parsed = ResourceIdentifier.from_api_data(linkage)
        else:
            parsed = None

        return cls(
            data=parsed,
            links=data.get('links') or {},
            meta=data.get('meta') or {},
        )

    @property
    def identifiers(self) -> List[ResourceIdentifier]:
        """Linked identifiers as a list, whatever the cardinality"""
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]


@dataclass
class Resource:
    """
    A JSON:API resource object

    Attributes:
        id: Resource id
        type: Resource type tag (e.g. "albums")
        attributes: Resource attributes as returned by the API
        relationships: Relationship name -> Relationship
        links: Resource links
    """
    id: str
    type: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    relationships: Dict[str, Relationship] = field(default_factory=dict)
    links: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "Resource":
        """Create a Resource from a JSON:API resource object"""
        return cls(
            id=str(data.get('id', '')),
            type=data.get('type', ''),
            attributes=data.get('attributes') or {},
            relationships={
                name: Relationship.from_api_data(value or {})
                for name, value in (data.get('relationships') or {}).items()
            },
            links=data.get('links') or {},
        )

    @property
    def kind(self) -> Optional[ResourceType]:
        """The known ResourceType for this resource's tag, if any"""
        return ResourceType.from_tag(self.type)

    @property
    def identifier(self) -> ResourceIdentifier:
        return ResourceIdentifier(self.id, self.type)

    def relationship_ids(self, name: str) -> List[ResourceIdentifier]:
        """Identifiers linked through a relationship (empty if absent or not included)"""
        relationship = self.relationships.get(name)
        return relationship.identifiers if relationship else []

    def get(self, attribute: str, default: Any = None) -> Any:
        """Shortcut for attributes.get()"""
        return self.attributes.get(attribute, default)


@dataclass
class Document:
    """
    A JSON:API top-level document

    Attributes:
        data: Primary data: a Resource, a list of Resources, a list of
              identifiers (relationship endpoints), or None
        included: Side-loaded resources requested with ``include``
        links: Document links, including the ``next`` page cursor
        meta: Document metadata
    """
    data: Union[Resource, List[Resource], List[ResourceIdentifier], None] = None
    included: List[Resource] = field(default_factory=list)
    links: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api_data(cls, data: Any) -> "Document":
        """
        Create a Document from a decoded JSON:API body

        Entries without attributes or relationships are treated as resource
        identifiers, which is what relationship endpoints return.
        """
        if not isinstance(data, dict):
            return cls()

        primary = data.get('data')
        if isinstance(primary, list):
            parsed = [_parse_primary(item) for item in primary]
        elif isinstance(primary, dict):
            parsed = _parse_primary(primary)
        else:
            parsed = None

        return cls(
            data=parsed,
            included=[Resource.from_api_data(item) for item in data.get('included') or []],
            links=data.get('links') or {},
            meta=data.get('meta') or {},
        )

    @property
    def resources(self) -> List[Union[Resource, ResourceIdentifier]]:
        """Primary data as a list"""
        if self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]

    @property
    def next_link(self) -> Optional[str]:
        """Cursor link of the next page, if any"""
        return self.links.get('next')

    def find_included(self, resource_type: str, resource_id: str) -> Optional[Resource]:
        """Look up a side-loaded resource by type and id"""
        for resource in self.included:
            if resource.type == resource_type and resource.id == str(resource_id):
                return resource
        return None


def _parse_primary(item: Dict[str, Any]) -> Union[Resource, ResourceIdentifier]:
    """Parse one primary-data entry as a Resource or a bare identifier"""
    if 'attributes' in item or 'relationships' in item:
        return Resource.from_api_data(item)
    return ResourceIdentifier.from_api_data(item)
