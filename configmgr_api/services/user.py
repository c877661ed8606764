"""Primary user (user device affinity) management."""
from __future__ import annotations
import logging
from typing import List

from configmgr_api.core.configmgr import AffinityManager, DeviceAffinitySource
from configmgr_api.core.validators import bare_user_name, require, validate_computer_name

from .base import operation

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, affinity: AffinityManager, domain_short_name: str = ""):
        self.affinity = affinity
        self.domain_short_name = domain_short_name
    
    def qualify(self, user_name: str) -> str:
        """Prefix a bare account name with the configured domain (``jdoe`` -> ``CONTOSO\\jdoe``)."""
        if "\\" in user_name or not self.domain_short_name:
            return user_name
        return f"{self.domain_short_name}\\{user_name}"
    
    def get_primary_users(self, computer_name: str) -> List[str]:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Get primary users", computer=computer_name):
            return self.affinity.get_primary_users(computer_name)
    
    def set_primary_user(self, computer_name: str, user_name: str) -> None:
        computer_name = validate_computer_name(computer_name)
        user_name = self.qualify(require(user_name, "userName"))
        with operation(logger, "Set primary user", computer=computer_name, user=user_name):
            self.affinity.set_primary_user(computer_name, user_name, DeviceAffinitySource.ADMINISTRATOR)
    
    def delete_primary_user(self, computer_name: str, user_name: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        user_name = require(user_name, "userName")
        # The account part must be non-empty; a bare "CONTOSO\\" is rejected
        require(bare_user_name(user_name), "userName")
        with operation(logger, "Delete primary user", computer=computer_name, user=user_name):
            return self.affinity.delete_primary_user(computer_name, user_name)
