"""Client configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ClientConfig:
    base_url: str = "http://localhost:5000/api"
    timeout_seconds: float = 10.0
    refresh_timeout_seconds: float = 10.0
