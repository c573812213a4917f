"""Pydantic configuration models for the exporter."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional


class NodeConfig(BaseModel):
    """One RabbitMQ node to poll."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    url: str
    username: str = Field(alias="uname")
    password: str
    req_interval: Optional[str] = None  # Falls back to the global interval
    timeout_ms: Optional[int] = Field(default=None, ge=100)

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('req_interval')
    @classmethod
    def blank_interval_is_unset(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class ExporterConfig(BaseModel):
    """Root configuration model."""
    nodes: List[NodeConfig] = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    req_interval: Optional[str] = None
    listen_address: str = ""  # All interfaces

    def effective_interval(self, node: NodeConfig) -> Optional[str]:
        """Node-specific interval if set, otherwise the global one."""
        return node.req_interval or self.req_interval
