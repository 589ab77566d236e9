"""PlaceSense: location identity resolution and marker composition."""

__version__ = "0.1.0"
