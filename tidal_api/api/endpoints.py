"""
Declarative endpoint table for the TIDAL v2 API

Every catalogue/user endpoint the facade exposes is a GET that follows one of
a handful of path shapes:

    /v2/<resource>                                   get all (filtered by options)
    /v2/<resource>/<id>                              get one
    /v2/<resource>/me                                get the current user's item
    /v2/<resource>/<id>/relationships/<name>         get a relationship

The only per-endpoint differences are the resource name, which shapes exist,
which relationships exist and which query parameters are required
(countryCode and/or locale). Those differences live in RESOURCES below, and
build_endpoint_methods() turns each row into real methods with proper
names, signatures and docstrings. Adding an endpoint means adding a row.

Generated methods take the path arguments first, then the required query
parameters in snake_case, then an optional options mapping merged on top of
the required parameters, and a keyword-only ``model`` for typed decoding:

    api.get_album('251380836', 'US', {'include': ['artists']})
    api.get_artist_relationship_similar_artists('1566', 'US', model=Document)
    api.get_user_relationship_public_profile('123', 'en-US')
"""

import re
from dataclasses import dataclass, field
from inspect import Parameter, Signature
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
from urllib.parse import quote


API_VERSION_PREFIX = '/v2'

COUNTRY = ('countryCode',)
COUNTRY_AND_LOCALE = ('countryCode', 'locale')
NONE = ()


@dataclass(frozen=True)
class ResourceSpec:
    """
    One row of the endpoint table.

    Attributes:
        name: Path segment of the resource, e.g. 'albums'.
        singular: Method stem for single-item methods, e.g. 'album'.
        plural: Method stem for the get-all method, or None when the API has no such endpoint.
        required: Query parameters required by the resource's endpoints.
        relationships: Relationship name -> required query parameters, or
                       None to inherit the resource's required parameters.
        get_one: Whether /<name>/<id> exists.
        me_method: Method name for /<name>/me, or None.
        path_argument: Name of the id argument in generated signatures.
    """
    name: str
    singular: str
    plural: Optional[str] = None
    required: Tuple[str, ...] = COUNTRY
    relationships: Mapping[str, Optional[Tuple[str, ...]]] = field(default_factory=dict)
    get_one: bool = True
    me_method: Optional[str] = None
    path_argument: str = 'resource_id'

    @property
    def path(self) -> str:
        return f"{API_VERSION_PREFIX}/{self.name}"

    def relationship_required(self, relationship: str) -> Tuple[str, ...]:
        """Required query parameters of a relationship endpoint."""
        required = self.relationships.get(relationship)
        return self.required if required is None else required


RESOURCES: Tuple[ResourceSpec, ...] = (
    ResourceSpec(
        name='albums',
        singular='album',
        plural='albums',
        relationships={
            'artists': None,
            'items': None,
            'providers': None,
            'similarAlbums': None,
        },
    ),
    ResourceSpec(
        name='artists',
        singular='artist',
        plural='artists',
        relationships={
            'albums': None,
            'radio': None,
            'roles': None,
            'similarArtists': None,
            'trackProviders': None,
            'tracks': None,
            'videos': None,
        },
    ),
    ResourceSpec(
        name='artistRoles',
        singular='artist_role',
        plural='artist_roles',
        required=NONE,
    ),
    ResourceSpec(
        name='providers',
        singular='provider',
        plural='providers',
        required=NONE,
    ),
    ResourceSpec(
        name='tracks',
        singular='track',
        plural='tracks',
        relationships={
            'albums': None,
            'artists': None,
            'providers': None,
            'radio': None,
            'similarTracks': None,
        },
    ),
    ResourceSpec(
        name='videos',
        singular='video',
        plural='videos',
        relationships={
            'albums': None,
            'artists': None,
            'providers': None,
        },
    ),
    ResourceSpec(
        name='searchresults',
        singular='search_result',
        relationships={
            'albums': None,
            'artists': None,
            'playlists': None,
            'topHits': None,
            'tracks': None,
            'videos': None,
        },
        path_argument='query',
    ),
    ResourceSpec(
        name='users',
        singular='user',
        plural='users',
        required=NONE,
        relationships={
            'entitlements': None,
            'publicProfile': ('locale',),
            'recommendations': None,
        },
        me_method='get_me',
    ),
    ResourceSpec(
        name='userEntitlements',
        singular='user_entitlement',
        required=NONE,
        me_method='get_my_user_entitlements',
    ),
    ResourceSpec(
        name='userRecommendations',
        singular='user_recommendation',
        plural='user_recommendations',
        required=COUNTRY_AND_LOCALE,
        relationships={
            'discoveryMixes': None,
            'myMixes': None,
            'newArrivalMixes': None,
        },
        me_method='get_my_user_recommendations',
    ),
    ResourceSpec(
        name='playlists',
        singular='playlist',
        get_one=False,
        me_method='get_my_playlists',
    ),
)


def snake_case(name: str) -> str:
    """Convert an API camelCase name to snake_case (similarAlbums -> similar_albums)."""
    return re.sub(r'(?<!^)(?=[A-Z])', '_', name).lower()


def quote_segment(value: Any) -> str:
    """URL-quote one path segment (ids, search queries)."""
    return quote(str(value), safe='')


def resource_uri(spec: ResourceSpec, resource_id: Any = None, relationship: Optional[str] = None) -> str:
    """Build the path for a resource, one item, or one item's relationship."""
    uri = spec.path
    if resource_id is not None:
        uri += '/' + quote_segment(resource_id)
    if relationship is not None:
        uri += '/relationships/' + quote_segment(relationship)
    return uri


def _endpoint_method(
    name: str,
    path_arguments: Tuple[str, ...],
    required: Tuple[str, ...],
    build_uri: Callable[..., str],
    doc: str
) -> Callable[..., Any]:
    """
    Create one facade method.

    The method binds its arguments against a real Signature (so help() and
    IDEs show the actual parameters), builds the URI from the path
    arguments and delegates to TidalApi.get().
    """
    parameters = [Parameter('self', Parameter.POSITIONAL_OR_KEYWORD)]
    parameters += [Parameter(argument, Parameter.POSITIONAL_OR_KEYWORD) for argument in path_arguments]
    parameters += [Parameter(snake_case(query), Parameter.POSITIONAL_OR_KEYWORD) for query in required]
    parameters.append(Parameter('options', Parameter.POSITIONAL_OR_KEYWORD, default=None))
    parameters.append(Parameter('model', Parameter.KEYWORD_ONLY, default=None))
    signature = Signature(parameters)

    def method(*args, **kwargs):
        bound = signature.bind(*args, **kwargs)
        bound.apply_defaults()
        arguments = bound.arguments

        uri = build_uri(*(arguments[argument] for argument in path_arguments))
        query = {key: arguments[snake_case(key)] for key in required}

        return arguments['self'].get(uri, query, arguments['options'], model=arguments['model'])

    method.__name__ = name
    method.__qualname__ = f"TidalApi.{name}"
    method.__doc__ = doc
    method.__signature__ = signature
    return method


def _describe(required: Tuple[str, ...]) -> str:
    """Docstring fragment listing required query parameters."""
    if not required:
        return "No query parameters are required."
    return "Required query parameters: " + ", ".join(required) + "."


def build_endpoint_methods(resources: Tuple[ResourceSpec, ...] = RESOURCES) -> Dict[str, Callable[..., Any]]:
    """
    Generate the facade's endpoint methods from the table.

    Returns:
        Method name -> function, ready to be set on TidalApi.
    """
    methods: Dict[str, Callable[..., Any]] = {}

    for spec in resources:
        argument = spec.path_argument

        if spec.get_one:
            methods[f"get_{spec.singular}"] = _endpoint_method(
                f"get_{spec.singular}",
                (argument,),
                spec.required,
                lambda resource_id, spec=spec: resource_uri(spec, resource_id),
                f"Get a single {spec.name} item.\n\nGET {spec.path}/{{{argument}}}. {_describe(spec.required)}"
            )

        if spec.plural:
            methods[f"get_{spec.plural}"] = _endpoint_method(
                f"get_{spec.plural}",
                (),
                spec.required,
                lambda spec=spec: resource_uri(spec),
                f"Get multiple {spec.name} items (use options such as filter[id]).\n\n"
                f"GET {spec.path}. {_describe(spec.required)}"
            )

        if spec.me_method:
            methods[spec.me_method] = _endpoint_method(
                spec.me_method,
                (),
                spec.required,
                lambda spec=spec: resource_uri(spec, 'me'),
                f"Get the current user's {spec.name} item.\n\nGET {spec.path}/me. {_describe(spec.required)}"
            )

        if spec.relationships:
            methods[f"get_{spec.singular}_relationship"] = _endpoint_method(
                f"get_{spec.singular}_relationship",
                (argument, 'relationship'),
                spec.required,
                lambda resource_id, relationship, spec=spec: resource_uri(spec, resource_id, relationship),
                f"Get any relationship of a {spec.name} item by name.\n\n"
                f"GET {spec.path}/{{{argument}}}/relationships/{{relationship}}. {_describe(spec.required)}"
            )

        for relationship in spec.relationships:
            name = f"get_{spec.singular}_relationship_{snake_case(relationship)}"
            required = spec.relationship_required(relationship)
            methods[name] = _endpoint_method(
                name,
                (argument,),
                required,
                lambda resource_id, spec=spec, relationship=relationship: resource_uri(spec, resource_id, relationship),
                f"Get the {relationship} relationship of a {spec.name} item.\n\n"
                f"GET {spec.path}/{{{argument}}}/relationships/{relationship}. {_describe(required)}"
            )

    return methods
