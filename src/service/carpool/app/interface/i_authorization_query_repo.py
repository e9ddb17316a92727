from abc import ABC, abstractmethod
from typing import Optional


class IAuthorizationQueryRepo(ABC):
    """Family-based access checks. A family reaches a group it owns or is a member of."""

    @abstractmethod
    async def get_user_family_id(self, *, user_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def user_family_can_access_child(self, *, user_id: str, child_id: str) -> bool:
        pass

    @abstractmethod
    async def user_family_can_access_group(self, *, user_id: str, group_id: str) -> bool:
        pass

    @abstractmethod
    async def get_user_timezone(self, *, user_id: str) -> Optional[str]:
        pass

    @abstractmethod
    async def get_group_timezone(self, *, group_id: str) -> Optional[str]:
        pass
