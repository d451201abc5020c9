from abc import ABC, abstractmethod


class IMetrics(ABC):
    @abstractmethod
    def record_execution(self, workflow_id: str, status: str, duration: float) -> None:
        pass

    @abstractmethod
    def record_poll_attempt(self, workflow_status: str) -> None:
        pass

    @abstractmethod
    def record_cache_lookup(self, tier: str, outcome: str) -> None:
        pass

    @abstractmethod
    def record_history_cleanup(self, reason: str) -> None:
        pass
