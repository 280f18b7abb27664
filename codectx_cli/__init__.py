"""codectx: heuristic concept, entry-point and dependency indexing."""

__version__ = "0.1.0"
