import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class StructuredLogger:
    """
    Lightweight JSON-lines logger for policy service and resolver paths.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger("expense_policy")

    def emit(self, event_type: str, **fields: Any) -> None:
        self._logger.info(self._render(event_type, fields))

    def warn(self, event_type: str, **fields: Any) -> None:
        self._logger.warning(self._render(event_type, fields))

    @staticmethod
    def _render(event_type: str, fields: Dict[str, Any]) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
        }
        payload.update(fields)
        return json.dumps(payload, default=str, ensure_ascii=True)
