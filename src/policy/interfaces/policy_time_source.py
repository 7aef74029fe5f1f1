from abc import ABC, abstractmethod
from datetime import datetime


class PolicyTimeSource(ABC):
    """
    Abstract source of time for policy timestamps.
    Lets tests pin creation order deterministically.
    """
    @abstractmethod
    def now(self) -> datetime:
        pass
