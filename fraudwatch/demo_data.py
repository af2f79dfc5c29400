"""
Deterministic demo data for the dashboard.

Generates users, transactions, behavioral sessions, risk scores and behaviour
profiles from a seeded RNG and loads them through the data-access insert
paths. Timestamps are written in the mix of encodings real producers send
(native datetimes, `{seconds, nanoseconds}` pairs, epoch milliseconds, ISO
strings) so the normalizer has something to do.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fraudwatch.domain.timestamps import datetime_to_millis
from fraudwatch.utils.logging import get_logger

log = get_logger(__name__)

FIRST_NAMES = ["Aarav", "Diya", "Kabir", "Meera", "Rohan", "Isha", "Vikram", "Ananya", "Arjun", "Sara"]
LAST_NAMES = ["Sharma", "Iyer", "Patel", "Reddy", "Gupta", "Nair", "Khan", "Das"]
BANKS = ["State Bank", "Union Bank", "City Bank", "Metro Bank"]
APP_VERSIONS = ["1.0.0", "1.1.0", "1.2.0", "2.0.0"]
USER_STATUSES = ["active", "suspended", "pending"]
TRANSACTION_STATUSES = ["completed", "pending", "failed", "flagged"]
TRANSACTION_TYPES = ["transfer", "payment", "withdrawal", "deposit"]
CATEGORIES = ["food", "shopping", "bills", "travel", "entertainment"]
RISK_LEVELS = ["low", "medium", "high"]
SIM_OPERATORS = ["Airtel", "Jio", "Vi", "BSNL"]


@dataclass
class DemoDataset:
    users: List[Dict[str, Any]] = field(default_factory=list)
    transactions: List[Dict[str, Any]] = field(default_factory=list)
    sessions: List[Dict[str, Any]] = field(default_factory=list)
    risk_scores: List[Dict[str, Any]] = field(default_factory=list)
    profiles: List[Dict[str, Any]] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "users": len(self.users),
            "transactions": len(self.transactions),
            "sessions": len(self.sessions),
            "risk_scores": len(self.risk_scores),
            "profiles": len(self.profiles),
        }


def _encode_timestamp(rng: random.Random, moment: datetime) -> Any:
    """One of the timestamp encodings producers use, picked at random."""
    millis = datetime_to_millis(moment)
    shape = rng.randrange(4)
    if shape == 0:
        return moment
    if shape == 1:
        return {"seconds": millis // 1000, "nanoseconds": (millis % 1000) * 1_000_000}
    if shape == 2:
        return millis
    return moment.isoformat()


def sample_touch_patterns(rng: random.Random, now_ms: int) -> List[Dict[str, Any]]:
    return [
        {
            "gestureType": "tap",
            "startTime": now_ms - 1000,
            "endTime": now_ms,
            "pressure": round(0.6 + rng.random() * 0.3, 3),
            "touchArea": round(15 + rng.random() * 10, 2),
            "coordinates": [{"x": 150 + rng.random() * 50, "y": 300 + rng.random() * 50, "timestamp": now_ms - 500}],
            "velocity": 0,
            "acceleration": 0,
            "hesitationCount": rng.randrange(3),
            "isRapidTouch": rng.random() > 0.8,
        },
        {
            "gestureType": "swipe",
            "startTime": now_ms - 2000,
            "endTime": now_ms - 1500,
            "pressure": round(0.5 + rng.random() * 0.4, 3),
            "touchArea": round(20 + rng.random() * 15, 2),
            "coordinates": [
                {"x": 100, "y": 400, "timestamp": now_ms - 2000},
                {"x": 200, "y": 400, "timestamp": now_ms - 1800},
                {"x": 300, "y": 400, "timestamp": now_ms - 1500},
            ],
            "velocity": round(150 + rng.random() * 100, 2),
            "acceleration": round(50 + rng.random() * 30, 2),
            "hesitationCount": 0,
            "isRapidTouch": False,
        },
    ]


def sample_typing_patterns(rng: random.Random, now_ms: int) -> List[Dict[str, Any]]:
    return [
        {
            "inputType": "password",
            "keystrokes": [
                {
                    "key": "p",
                    "dwellTime": round(120 + rng.random() * 50, 2),
                    "flightTime": round(80 + rng.random() * 40, 2),
                    "pressure": round(0.7 + rng.random() * 0.2, 3),
                    "touchArea": round(18 + rng.random() * 8, 2),
                    "timestamp": now_ms - 3000,
                    "isCorrection": False,
                }
            ],
            "typingSpeed": round(2.5 + rng.random() * 1.5, 2),
            "accuracy": round(0.85 + rng.random() * 0.1, 3),
            "errorRate": round(rng.random() * 0.1, 3),
            "longPauseCount": rng.randrange(3),
        }
    ]


def sample_motion_pattern(rng: random.Random, now_ms: int) -> List[Dict[str, Any]]:
    return [
        {
            "accelerometer": {"x": rng.uniform(-1, 1), "y": rng.uniform(-1, 1), "z": 9.8 + rng.uniform(-0.2, 0.2)},
            "gyroscope": {"x": rng.uniform(-0.1, 0.1), "y": rng.uniform(-0.1, 0.1), "z": rng.uniform(-0.1, 0.1)},
            "timestamp": now_ms - offset,
        }
        for offset in (900, 600, 300)
    ]


def generate_dataset(
    users: int = 20,
    transactions_per_user: int = 4,
    sessions_per_user: int = 3,
    seed: int = 42,
    now: Optional[datetime] = None,
) -> DemoDataset:
    """Build a reproducible dataset; identical arguments give identical records."""
    rng = random.Random(seed)
    now = now or datetime.now(timezone.utc)
    dataset = DemoDataset()

    for index in range(users):
        user_id = f"user_{index:04d}"
        created = now - timedelta(days=rng.randrange(0, 14), minutes=rng.randrange(0, 1440))
        last_login = now - timedelta(days=rng.randrange(0, 60))
        mobile = f"9{rng.randrange(100_000_000, 999_999_999)}"
        name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"
        dataset.users.append(
            {
                "id": user_id,
                "mobile": mobile,
                "fullName": name,
                "emailId": f"{name.lower().replace(' ', '.')}{index}@example.com",
                "age": rng.randrange(18, 70),
                "gender": rng.choice(["male", "female"]),
                "bankName": rng.choice(BANKS),
                "accountNumber": str(rng.randrange(10**11, 10**12)),
                "ifscCode": f"BANK0{rng.randrange(100000, 999999)}",
                "branchName": "Main",
                "accountType": rng.choice(["savings", "current"]),
                "balance": round(rng.uniform(100, 250_000), 2),
                "biometricEnabled": rng.random() > 0.5,
                "status": rng.choice(USER_STATUSES),
                "appVersion": rng.choice(APP_VERSIONS),
                "createdAt": _encode_timestamp(rng, created),
                "updatedAt": _encode_timestamp(rng, created),
                "lastLoginAt": _encode_timestamp(rng, last_login),
            }
        )

        for tx_index in range(transactions_per_user):
            moment = created + timedelta(hours=rng.randrange(1, 72))
            dataset.transactions.append(
                {
                    "id": f"txn_{index:04d}_{tx_index}",
                    "amount": float(rng.randrange(1, 50_000)) if rng.random() > 0.3 else round(rng.uniform(1, 5000), 2),
                    "reference": f"REF{rng.randrange(10**7, 10**8)}",
                    "description": rng.choice(["Rent", "Groceries", "Movie night", "Electricity bill", "Flight"]),
                    "fromUserId": user_id,
                    "toUserId": f"user_{rng.randrange(users):04d}",
                    "fromMobile": mobile,
                    "toMobile": f"9{rng.randrange(100_000_000, 999_999_999)}",
                    "status": rng.choice(TRANSACTION_STATUSES),
                    "type": rng.choice(TRANSACTION_TYPES),
                    "category": rng.choice(CATEGORIES),
                    "createdAt": _encode_timestamp(rng, moment),
                    "updatedAt": _encode_timestamp(rng, moment),
                }
            )

        for session_index in range(sessions_per_user):
            moment = now - timedelta(hours=rng.randrange(0, 240))
            moment_ms = datetime_to_millis(moment)
            session_id = f"session_{moment_ms}_{index:04d}{session_index}"
            kinds = rng.sample(["touch", "typing", "motion"], k=rng.randrange(1, 4))
            dataset.sessions.append(
                {
                    "id": session_id,
                    "sessionId": session_id,
                    "userId": user_id,
                    "timestamp": _encode_timestamp(rng, moment),
                    "touchPatterns": sample_touch_patterns(rng, moment_ms) if "touch" in kinds else [],
                    "typingPatterns": sample_typing_patterns(rng, moment_ms) if "typing" in kinds else [],
                    "motionPattern": sample_motion_pattern(rng, moment_ms) if "motion" in kinds else [],
                    "loginBehavior": {
                        "loginTime": moment_ms,
                        "authMethod": rng.choice(["biometric", "password"]),
                        "authAttempts": 1 + rng.randrange(2),
                        "authSuccess": rng.random() > 0.1,
                    },
                    "createdAt": moment,
                }
            )
            level = rng.choice(RISK_LEVELS)
            dataset.risk_scores.append(
                {
                    "id": f"risk_{session_id}",
                    "userId": user_id,
                    "sessionId": session_id,
                    "riskLevel": level,
                    "totalScore": round({"low": 0.2, "medium": 0.5, "high": 0.8}[level] + rng.random() * 0.15, 3),
                    "reason": f"{level} deviation from behaviour profile",
                    "recommendation": "block" if level == "high" else "monitor",
                    "breakdown": {
                        "locationRisk": round(rng.random(), 3),
                        "behaviorRisk": round(rng.random(), 3),
                        "deviceRisk": round(rng.random(), 3),
                        "networkRisk": round(rng.random(), 3),
                        "typingRisk": round(rng.random(), 3),
                    },
                    "alerts": [
                        {"type": "location", "message": "New location detected", "severity": level}
                    ]
                    if level != "low"
                    else [],
                    "timestamp": moment_ms,
                    "createdAt": moment,
                }
            )

        dataset.profiles.append(
            {
                "id": user_id,
                "userId": user_id,
                "DeviceFingerprint": {"model": rng.choice(["Pixel 8", "Galaxy S23", "iPhone 15"]), "os": "mobile"},
                "simOperator": rng.choice(SIM_OPERATORS),
                "locationPatterns": [
                    {
                        "altitude": round(rng.uniform(0, 50), 1),
                        "timezone": "Asia/Kolkata",
                        "latitude": round(19.07 + rng.uniform(-0.05, 0.05), 5),
                        "longitude": round(72.87 + rng.uniform(-0.05, 0.05), 5),
                        "timestamp": datetime_to_millis(created),
                        "vpnDetected": rng.random() > 0.9,
                    }
                ],
            }
        )

    return dataset


def seed(data_access, dataset: DemoDataset) -> Dict[str, int]:
    """Insert every record of `dataset` through the data-access insert paths."""
    for user in dataset.users:
        data_access.add_user(user)
    for transaction in dataset.transactions:
        data_access.add_transaction(transaction)
    for session in dataset.sessions:
        data_access.add_behavioral_session(session)
    for score in dataset.risk_scores:
        data_access.add_risk_score(score)
    for profile in dataset.profiles:
        data_access.add_behavior_profile(profile)
    counts = dataset.counts()
    log.info("Demo data seeded", extra=counts)
    return counts


__all__ = [
    "DemoDataset",
    "generate_dataset",
    "sample_motion_pattern",
    "sample_touch_patterns",
    "sample_typing_patterns",
    "seed",
]
