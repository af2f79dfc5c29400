"""
Typed record models for each collection.

Records arrive from the store as loose mappings whose fields may be missing or
null. Each model carries the dashboard's defaults in one place, and
`decode_record` is the single decode step: it returns a fully-populated model
or raises `RecordDecodeError`. Unknown fields are kept (`extra="allow"`) so
transactions and sessions keep producer-specific payloads.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from fraudwatch.errors import RecordDecodeError

Timestamp = Union[int, float, str]


class StoreRecord(BaseModel):
    """Base for decoded records: camelCase on the wire, frozen once built."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Null fields fall back to the model default.
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value is not None}
        return data


class User(StoreRecord):
    id: str
    mobile: str = ""
    full_name: str = ""
    email_id: str = ""
    age: int = 0
    gender: str = "male"
    profile: Optional[Any] = None
    bank_name: str = ""
    account_number: str = ""
    ifsc_code: str = ""
    branch_name: str = ""
    account_type: str = "savings"
    balance: float = 0.0
    pin_hash: Optional[str] = None
    recovery_questions: List[Any] = Field(default_factory=list)
    biometric_enabled: bool = False
    biometric_type: Optional[str] = None
    status: Optional[str] = None
    app_version: Optional[str] = None
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None
    is_active: bool = True
    last_login_at: Optional[Timestamp] = None
    fcm_token: Optional[str] = None


class Transaction(StoreRecord):
    id: str
    amount: float = 0.0
    reference: str = ""
    description: str = ""
    from_user_id: str = ""
    to_user_id: Optional[str] = None
    from_mobile: str = ""
    to_mobile: str = ""
    status: str = ""
    type: str = ""
    category: str = ""
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None


class BehavioralSession(StoreRecord):
    id: str
    session_id: str = ""
    user_id: str = ""
    timestamp: Timestamp = 0
    touch_patterns: List[Dict[str, Any]] = Field(default_factory=list)
    typing_patterns: List[Dict[str, Any]] = Field(default_factory=list)
    motion_pattern: List[Dict[str, Any]] = Field(default_factory=list)
    login_behavior: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None


class RiskBreakdown(StoreRecord):
    location_risk: float = 0.0
    behavior_risk: float = 0.0
    device_risk: float = 0.0
    network_risk: float = 0.0
    typing_risk: float = 0.0


class RiskAlert(StoreRecord):
    type: str = ""
    message: str = ""
    severity: str = "low"


class RiskScore(StoreRecord):
    id: str
    user_id: str = ""
    session_id: str = ""
    risk_level: str = "low"
    total_score: float = 0.0
    reason: str = ""
    recommendation: str = ""
    breakdown: RiskBreakdown = Field(default_factory=RiskBreakdown)
    alerts: List[RiskAlert] = Field(default_factory=list)
    extra_info: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Timestamp = 0
    created_at: Optional[Timestamp] = None


class LocationPattern(StoreRecord):
    altitude: float = 0.0
    timezone: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    timestamp: Timestamp = 0
    vpn_detected: bool = False


class BehaviorProfile(StoreRecord):
    id: str
    user_id: str = ""
    device_fingerprint: Dict[str, Any] = Field(default_factory=dict, alias="DeviceFingerprint")
    sim_operator: str = ""
    location_patterns: List[LocationPattern] = Field(default_factory=list)


class VersionShare(StoreRecord):
    version: str
    count: int
    percentage: float


class DailyUsers(StoreRecord):
    day: str
    users: int


class DailyTransactions(StoreRecord):
    day: str
    amount: float
    count: int


class AdminStats(StoreRecord):
    """Dashboard overview numbers; `error` is set when the read was degraded."""

    total_users: int = 0
    active_users: int = 0
    total_transactions: int = 0
    total_transaction_amount: float = 0.0
    total_behavioral_sessions: int = 0
    app_versions: List[VersionShare] = Field(default_factory=list)
    recent_users: List[User] = Field(default_factory=list)
    recent_transactions: List[Transaction] = Field(default_factory=list)
    user_growth: List[DailyUsers] = Field(default_factory=list)
    transaction_trends: List[DailyTransactions] = Field(default_factory=list)
    error: Optional[str] = None


R = TypeVar("R", bound=StoreRecord)


def decode_record(model: type[R], raw: Mapping[str, Any], collection: str) -> R:
    """
    Decode one normalized store record into `model`.

    Raises
    ------
    RecordDecodeError
        If the record is not a mapping or a field has an incompatible type.
    """
    if not isinstance(raw, Mapping):
        raise RecordDecodeError(collection, None, f"expected a mapping, got {type(raw).__name__}")
    try:
        return model.model_validate(raw)
    except PydanticValidationError as exc:
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        )
        raise RecordDecodeError(collection, raw.get("id"), detail) from exc


__all__ = [
    "StoreRecord",
    "User",
    "Transaction",
    "BehavioralSession",
    "RiskBreakdown",
    "RiskAlert",
    "RiskScore",
    "LocationPattern",
    "BehaviorProfile",
    "VersionShare",
    "DailyUsers",
    "DailyTransactions",
    "AdminStats",
    "decode_record",
]
