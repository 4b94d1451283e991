"""
Consul Service Registry Module

Registers the running service with the local Consul agent and resolves
peer services to healthy instances.
"""

import consul
import logging
import os
import socket
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class ConsulRegistry:
    """
    Consul registration and discovery client.

    Registration uses an HTTP health check against the service's /health
    endpoint, so Consul removes the instance when the process stops answering.
    """

    def __init__(
        self,
        service_name: Optional[str] = None,
        service_port: Optional[int] = None,
        consul_host: str = "localhost",
        consul_port: int = 8500,
        service_host: Optional[str] = None,
        tags: Optional[List[str]] = None,
        meta: Optional[Dict[str, str]] = None,
        health_check_interval: str = "15s",
    ):
        self.consul = consul.Consul(host=consul_host, port=consul_port)
        self.service_name = service_name
        self.service_port = service_port
        if service_host and service_host != "0.0.0.0":
            self.service_host = service_host
        else:
            self.service_host = os.getenv("HOSTNAME", socket.gethostname())
        self.service_id = (
            f"{service_name}-{self.service_host}-{service_port}"
            if service_name and service_port
            else "discovery-client"
        )
        self.tags = tags or []
        self.meta = meta or {}
        self.health_check_interval = health_check_interval
        self._round_robin_counters: Dict[str, int] = {}
        logger.info(f"Consul client initialized: {consul_host}:{consul_port}")

    # ========================================
    # Registration
    # ========================================

    def register(self) -> bool:
        """Register this service instance with the Consul agent"""
        if not self.service_name or not self.service_port:
            logger.warning("Consul registration skipped: service name/port not set")
            return False

        try:
            check = consul.Check.http(
                f"http://{self.service_host}:{self.service_port}/health",
                interval=self.health_check_interval,
                deregister="1m",
            )
            self.consul.agent.service.register(
                name=self.service_name,
                service_id=self.service_id,
                address=self.service_host,
                port=self.service_port,
                tags=self.tags,
                meta=self.meta,
                check=check,
            )
            logger.info(f"Registered {self.service_id} with Consul")
            return True
        except Exception as e:
            logger.error(f"Failed to register {self.service_id} with Consul: {e}")
            return False

    def deregister(self) -> bool:
        """Remove this service instance from the Consul agent"""
        try:
            self.consul.agent.service.deregister(self.service_id)
            logger.info(f"Deregistered {self.service_id} from Consul")
            return True
        except Exception as e:
            logger.error(f"Failed to deregister {self.service_id}: {e}")
            return False

    # ========================================
    # Service Discovery
    # ========================================

    def discover_service(self, service_name: str) -> List[Dict[str, Any]]:
        """Discover healthy instances of a service"""
        try:
            index, services = self.consul.health.service(service_name, passing=True)

            instances = []
            for service in services:
                instances.append({
                    "id": service["Service"]["ID"],
                    "address": service["Service"]["Address"],
                    "port": service["Service"]["Port"],
                    "tags": service["Service"].get("Tags", []),
                    "meta": service["Service"].get("Meta", {}),
                })
            return instances
        except Exception as e:
            logger.error(f"Failed to discover service {service_name}: {e}")
            return []

    def get_service_instance(self, service_name: str) -> Optional[Tuple[str, int]]:
        """Pick one healthy instance (round robin) as a (host, port) pair"""
        instances = self.discover_service(service_name)
        if not instances:
            return None

        counter = self._round_robin_counters.get(service_name, 0)
        self._round_robin_counters[service_name] = (counter + 1) % len(instances)
        instance = instances[counter % len(instances)]
        return instance["address"], int(instance["port"])


__all__ = ["ConsulRegistry"]
