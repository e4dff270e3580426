"""Whitelisted configuration keys, their types and defaults."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from src.core.exceptions import InvalidConfigKeyError, InvalidConfigValueError

ConfigValue = Union[bool, int, float, str]

BOOLEAN = "boolean"
NUMBER = "number"
STRING = "string"
ENUM = "enum"


@dataclass(frozen=True)
class ConfigKeySpec:
    value_type: str
    default: ConfigValue
    choices: Optional[Tuple[str, ...]] = None


def _flag(default: bool = True) -> ConfigKeySpec:
    return ConfigKeySpec(BOOLEAN, default)


def _number(default: int) -> ConfigKeySpec:
    return ConfigKeySpec(NUMBER, default)


def _choice(default: str, *choices: str) -> ConfigKeySpec:
    return ConfigKeySpec(ENUM, default, tuple(choices))


CONFIG_KEYS: Dict[str, ConfigKeySpec] = {
    # Module toggles
    "attendance.enabled": _flag(),
    "exams.enabled": _flag(),
    "fees.enabled": _flag(),
    "transport.enabled": _flag(),
    "library.enabled": _flag(),
    "communication.enabled": _flag(),
    "reports.enabled": _flag(),
    "timetable.enabled": _flag(),
    # Plan limits
    "limits.maxStudents": _number(1000),
    "limits.maxStaff": _number(100),
    "limits.maxBranches": _number(5),
    "limits.maxUsersPerBranch": _number(50),
    "limits.storageGb": _number(10),
    # Module policies
    "attendance.correctionAllowed": _flag(),
    "attendance.correctionWindowDays": _number(7),
    "fees.partialPaymentAllowed": _flag(),
    "fees.lateFeePercentage": _number(5),
    "reports.attendanceThreshold": _number(75),
    "library.maxBooksPerStudent": _number(3),
    "library.issueDurationDays": _number(14),
    "library.finePerDay": _number(5),
    "exams.passingPercentage": _number(40),
    "exams.gradePublishAllowed": _flag(),
    # Rate limiting
    "rate.limit.enabled": _flag(),
    "rate.limit.tenant.perMinute": _number(1000),
    "rate.limit.user.perMinute": _number(100),
    "rate.limit.ip.perMinute": _number(60),
    "rate.limit.auth.login.perMinute": _number(5),
    "rate.limit.auth.passwordReset.perHour": _number(3),
    "rate.limit.blockDurationSeconds": _number(60),
    # Files
    "files.maxUploadMb": _number(10),
    "files.signedUrlExpirySeconds": _number(3600),
    "files.storageProvider": _choice("local", "local", "s3"),
    # Notifications
    "notification.email.provider": _choice("smtp", "smtp", "ses"),
    "notification.email.enabled": _flag(),
    "notification.sms.provider": _choice("twilio", "twilio", "msg91"),
    "notification.sms.enabled": _flag(),
    "notification.whatsapp.provider": _choice("meta", "meta"),
    "notification.whatsapp.enabled": _flag(),
    "notification.maxRetryCount": _number(3),
    # Background jobs
    "jobs.enabled": _flag(),
    "jobs.concurrency": _number(5),
    "jobs.maxRetry": _number(3),
    "jobs.backoffSeconds": _number(30),
    # System
    "system.maintenanceMode": _flag(False),
    "system.debugMode": _flag(False),
    "system.timezone": ConfigKeySpec(STRING, "Asia/Kolkata"),
    "system.dateFormat": ConfigKeySpec(STRING, "DD/MM/YYYY"),
}


def is_valid_key(key: str) -> bool:
    return key in CONFIG_KEYS


def get_key_spec(key: str) -> ConfigKeySpec:
    """Return the declaration for ``key`` or raise :class:`InvalidConfigKeyError`."""

    spec = CONFIG_KEYS.get(key)
    if spec is None:
        raise InvalidConfigKeyError(key)
    return spec


def _normalise_number(value: float) -> Union[int, float]:
    if value.is_integer():
        return int(value)
    return value


def parse_value(raw: str, value_type: str) -> ConfigValue:
    """Turn a stored string back into a typed value."""

    if value_type == BOOLEAN:
        return raw == "true"
    if value_type == NUMBER:
        try:
            number = float(raw)
        except (TypeError, ValueError):
            return 0
        if math.isnan(number) or math.isinf(number):
            return 0
        return _normalise_number(number)
    return raw


def coerce_value(key: str, value: Any) -> ConfigValue:
    """Validate a caller supplied value against the key's declared type.

    Strings are accepted for booleans and numbers as long as they parse
    unambiguously ("true"/"false", numeric text).
    """

    spec = get_key_spec(key)
    if spec.value_type == BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in {"true", "false"}:
            return value.lower() == "true"
        raise InvalidConfigValueError(key, BOOLEAN)

    if spec.value_type == NUMBER:
        if isinstance(value, bool):
            raise InvalidConfigValueError(key, NUMBER)
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            try:
                number = float(value.strip())
            except ValueError as exc:
                raise InvalidConfigValueError(key, NUMBER) from exc
        else:
            raise InvalidConfigValueError(key, NUMBER)
        if math.isnan(number) or math.isinf(number):
            raise InvalidConfigValueError(key, NUMBER)
        return _normalise_number(number)

    if not isinstance(value, str):
        raise InvalidConfigValueError(key, spec.value_type)
    if spec.value_type == ENUM and spec.choices and value not in spec.choices:
        raise InvalidConfigValueError(key, "one of " + ", ".join(spec.choices))
    return value


def serialize_value(value: ConfigValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
