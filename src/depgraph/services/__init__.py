"""Service layer: propagation and invocation logic returning ServiceResult.

Services may import from domain and infrastructure layers.
"""
