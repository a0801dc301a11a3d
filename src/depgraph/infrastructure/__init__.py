"""Infrastructure layer: graph store, persistence log, filesystem.

This layer depends on the domain layer, stdlib, and third-party libs
(pydantic, NetworkX). It must never import from services or config.
"""
