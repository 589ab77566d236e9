"""External service clients for PlaceSense."""

from place_sense.clients.places import PlacesClient, PlacesClientError

__all__ = ["PlacesClient", "PlacesClientError"]
