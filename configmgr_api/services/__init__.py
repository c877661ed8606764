"""Domain services, one per entity family, and their wiring."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from configmgr_api.core.configmgr import (
    AffinityManager,
    CollectionManager,
    ConfigMgrClient,
    DeviceManager,
    MigrationManager,
)
from configmgr_api.core.graph import ClientCredentialProvider, DirectoryManager, GraphClient, IntuneManager

from .collection import CollectionService
from .computer import ComputerService
from .directory import DirectoryService
from .migration import MigrationService
from .user import UserService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Process-wide service container stored in ``app.extensions["configmgr"]``."""
    computer: ComputerService
    collection: CollectionService
    user: UserService
    migration: MigrationService
    directory: DirectoryService
    configmgr_client: Optional[ConfigMgrClient] = None
    graph_client: Optional[GraphClient] = None
    
    def close(self) -> None:
        """Release both plane connections."""
        if self.configmgr_client is not None:
            self.configmgr_client.close()
        if self.graph_client is not None:
            self.graph_client.close()


def build_services(cfg) -> Services:
    """Create the plane clients and services from settings.
    
    No network call is made here: the ConfigMgr session connects on first
    use and the Graph token is acquired on the first Graph request.
    """
    configmgr = ConfigMgrClient(
        cfg.configmgr_site_server,
        username=cfg.configmgr_username,
        password=cfg.configmgr_password,
        verify_tls=cfg.configmgr_verify_tls,
        max_workers=cfg.plane_workers,
        offload_timeout=cfg.plane_timeout,
    )
    credentials = ClientCredentialProvider(
        cfg.graph_tenant_id,
        cfg.graph_app_id,
        cfg.graph_client_secret,
        authority=cfg.graph_authority,
    )
    graph = GraphClient(cfg.graph_url, credentials)
    
    devices = DeviceManager(configmgr)
    services = Services(
        computer=ComputerService(devices),
        collection=CollectionService(CollectionManager(configmgr, devices), devices),
        user=UserService(AffinityManager(configmgr, devices), cfg.configmgr_domain_short_name),
        migration=MigrationService(MigrationManager(configmgr, devices)),
        directory=DirectoryService(DirectoryManager(graph), IntuneManager(graph)),
        configmgr_client=configmgr,
        graph_client=graph,
    )
    logger.info("Services wired: ConfigMgr=%s Graph=%s", cfg.configmgr_site_server, graph.graph_url)
    return services


__all__ = [
    "Services",
    "build_services",
    "CollectionService",
    "ComputerService",
    "DirectoryService",
    "MigrationService",
    "UserService",
]
