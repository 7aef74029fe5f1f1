from datetime import datetime, timezone
from uuid import UUID, uuid4

from src.policy.interfaces.policy_id_source import PolicyIdSource
from src.policy.interfaces.policy_time_source import PolicyTimeSource


class SystemPolicyTimeSource(PolicyTimeSource):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class RandomPolicyIdSource(PolicyIdSource):
    def new_id(self) -> UUID:
        return uuid4()
