"""depgraph: incremental, content-addressed module dependency graph."""

__version__ = "0.1.0"
