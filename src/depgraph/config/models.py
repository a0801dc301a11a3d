"""Pydantic configuration sections with code-baked defaults.

A ``depgraph.toml`` only needs to carry overrides; an absent file means
every default below applies.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LogConfig(BaseModel):
    """[log] section: where the graph log lives and how appends retry."""

    model_config = {"frozen": True}

    dir: str = ".depgraph"
    filename: str = "graph"
    max_retries: int = Field(default=8, ge=0)
    retry_delay_ms: int = Field(default=100, ge=0)


class ArtifactsConfig(BaseModel):
    """[artifacts] section."""

    model_config = {"frozen": True}

    enabled: bool = True


class PackagesConfig(BaseModel):
    """[packages] section."""

    model_config = {"frozen": True}

    modules_dir: str = "node_modules"
