from abc import ABC, abstractmethod
from uuid import UUID


class PolicyIdSource(ABC):
    @abstractmethod
    def new_id(self) -> UUID:
        pass
