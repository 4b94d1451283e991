#!/usr/bin/env python3
"""Consul service discovery configuration"""
import os
from dataclasses import dataclass

def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class ConsulConfig:
    """Consul agent location and discovery switch"""
    enabled: bool = False
    host: str = "localhost"
    port: int = 8500

    @classmethod
    def from_env(cls) -> 'ConsulConfig':
        return cls(
            enabled=_bool(os.getenv("CONSUL_ENABLED", "false")),
            host=os.getenv("CONSUL_HOST", "localhost"),
            port=_int(os.getenv("CONSUL_PORT", "8500"), 8500),
        )
