"""
Fraud Alert Module

Fraud alerts are produced out of band (seeded in the demo) and are read-only
to the rest of the system.
"""

from datetime import datetime
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum

from .storage import StorageInterface, StorageRecord, utcnow


class FraudSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class FraudAlert(StorageRecord):
    """Suspicious-activity notice attached to a user"""
    user_id: int
    description: str
    severity: FraudSeverity
    timestamp: datetime
    resolved: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FraudAlert':
        data = dict(data)
        data['severity'] = FraudSeverity(data['severity'])
        data['timestamp'] = datetime.fromisoformat(data['timestamp'])
        return super().from_dict(data)

    def to_public_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "description": self.description,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "resolved": self.resolved,
        }


class FraudAlertRegistry:

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "fraud_alerts"

    def raise_alert(
        self,
        user_id: int,
        description: str,
        severity: FraudSeverity,
        timestamp: Optional[datetime] = None
    ) -> FraudAlert:
        """Record a new unresolved alert for a user"""
        now = utcnow()
        alert = FraudAlert(
            id=self.storage.next_id(self.table_name),
            created_at=now,
            updated_at=now,
            user_id=user_id,
            description=description,
            severity=severity,
            timestamp=timestamp or now
        )
        self.storage.save(self.table_name, alert.id, alert.to_dict())
        return alert

    def list_by_user(self, user_id: int) -> List[FraudAlert]:
        found = self.storage.find(self.table_name, {"user_id": user_id})
        return [FraudAlert.from_dict(data) for data in found]

    def list_unresolved(self) -> List[FraudAlert]:
        """Alerts across all users that are still open, oldest first"""
        found = self.storage.find(self.table_name, {"resolved": False})
        return [FraudAlert.from_dict(data) for data in found]
