"""iRacing race companion: derives session, lap and pit stop events and streams them over WebSocket."""

__version__ = '1.0.0'
