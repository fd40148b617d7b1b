"""IRC bot core: session, line codec, command facade and trigger dispatch."""

__version__ = "1.0.0"
