"""Entra ID group membership and Intune device operations."""
from __future__ import annotations
import logging
from typing import Optional

from configmgr_api.core.exceptions import NotFoundError
from configmgr_api.core.graph import DirectoryManager, IntuneManager
from configmgr_api.core.validators import require, validate_computer_name

from .base import operation

logger = logging.getLogger(__name__)


class DirectoryService:
    """Idempotent group membership on top of Graph's explicit add/remove calls."""
    
    def __init__(self, directory: DirectoryManager, intune: IntuneManager):
        self.directory = directory
        self.intune = intune
    
    # ─────────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────────
    def get_user_id_by_upn(self, upn: str) -> str:
        upn = require(upn, "userPrincipalName")
        with operation(logger, "Resolve Entra user by UPN", upn=upn):
            return self.directory.get_user_id_by_upn(upn)
    
    def get_user_id_by_sam_account_name(self, sam_account_name: str) -> str:
        sam_account_name = require(sam_account_name, "samAccountName")
        with operation(logger, "Resolve Entra user by sAMAccountName", sam=sam_account_name):
            return self.directory.get_user_id_by_sam_account_name(sam_account_name)
    
    def get_device_id(self, computer_name: str) -> str:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Resolve Entra device", computer=computer_name):
            return self.directory.get_entra_device_id_by_name(computer_name)
    
    # ─────────────────────────────────────────────────────────────────────────
    # Group membership
    # ─────────────────────────────────────────────────────────────────────────
    def is_computer_in_group(self, computer_name: str, group_name: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        group_name = require(group_name, "groupName")
        with operation(logger, "Check Entra group membership", computer=computer_name, group=group_name):
            device_id = self.directory.get_entra_device_id_by_name(computer_name)
            group_id = self.directory.get_group_id_by_name(group_name)
            return self.directory.is_member_of_group(device_id, group_id)
    
    def add_computer_to_group(self, computer_name: str, group_name: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        group_name = require(group_name, "groupName")
        with operation(logger, "Add computer to Entra group", computer=computer_name, group=group_name):
            device_id = self.directory.get_entra_device_id_by_name(computer_name)
            return self._add(device_id, group_name)
    
    def remove_computer_from_group(self, computer_name: str, group_name: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        group_name = require(group_name, "groupName")
        with operation(logger, "Remove computer from Entra group", computer=computer_name, group=group_name):
            device_id = self.directory.get_entra_device_id_by_name(computer_name)
            return self._remove(device_id, group_name)
    
    def add_user_to_group(self, sam_account_name: str, group_name: str) -> bool:
        sam_account_name = require(sam_account_name, "samAccountName")
        group_name = require(group_name, "groupName")
        with operation(logger, "Add user to Entra group", sam=sam_account_name, group=group_name):
            user_id = self.directory.get_user_id_by_sam_account_name(sam_account_name)
            return self._add(user_id, group_name)
    
    def remove_user_from_group(self, sam_account_name: str, group_name: str) -> bool:
        sam_account_name = require(sam_account_name, "samAccountName")
        group_name = require(group_name, "groupName")
        with operation(logger, "Remove user from Entra group", sam=sam_account_name, group=group_name):
            user_id = self.directory.get_user_id_by_sam_account_name(sam_account_name)
            return self._remove(user_id, group_name)
    
    def _add(self, object_id: str, group_name: str) -> bool:
        group_id = self.directory.get_group_id_by_name(group_name)
        if self.directory.is_member_of_group(object_id, group_id):
            logger.info("%s already in group %s", object_id, group_name)
            return False
        return self.directory.add_member_to_group(object_id, group_id)
    
    def _remove(self, object_id: str, group_name: str) -> bool:
        group_id = self.directory.get_group_id_by_name(group_name)
        if not self.directory.is_member_of_group(object_id, group_id):
            logger.info("%s not in group %s", object_id, group_name)
            return False
        return self.directory.remove_member_from_group(object_id, group_id)
    
    # ─────────────────────────────────────────────────────────────────────────
    # Intune
    # ─────────────────────────────────────────────────────────────────────────
    def intune_device_exists(self, computer_name: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Check Intune device exists", computer=computer_name):
            try:
                self.intune.get_intune_device_id_by_name(computer_name)
            except NotFoundError:
                return False
            return True
    
    def get_intune_primary_user(self, computer_name: str) -> Optional[str]:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Get Intune primary user", computer=computer_name):
            device_id = self.intune.get_intune_device_id_by_name(computer_name)
            return self.intune.get_primary_user(device_id)
    
    def set_intune_primary_user(self, computer_name: str, upn: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        upn = require(upn, "userPrincipalName")
        with operation(logger, "Set Intune primary user", computer=computer_name, upn=upn):
            device_id = self.intune.get_intune_device_id_by_name(computer_name)
            user_id = self.directory.get_user_id_by_upn(upn)
            return self.intune.set_primary_user(device_id, user_id)
    
    def is_co_managed(self, computer_name: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        with operation(logger, "Check co-management", computer=computer_name):
            device_id = self.intune.get_intune_device_id_by_name(computer_name)
            return self.intune.is_device_co_managed(device_id)
    
    def set_device_category(self, computer_name: str, category_name: str) -> bool:
        computer_name = validate_computer_name(computer_name)
        category_name = require(category_name, "categoryName")
        with operation(logger, "Set Intune device category", computer=computer_name, category=category_name):
            device_id = self.intune.get_intune_device_id_by_name(computer_name)
            return self.intune.set_device_category(device_id, category_name)
