"""
Package safety validation: registry metadata, check battery and reports.
"""

from mindy.safety.checks import SafetyChecker
from mindy.safety.schemas import (
    CheckCategory,
    PackageMetadata,
    PackageSafetyReport,
    SafetyCheck,
    SafetyLevel,
    Severity,
)
from mindy.safety.validator import PackageValidator, calculate_safety_level

__all__ = [
    "CheckCategory",
    "PackageMetadata",
    "PackageSafetyReport",
    "PackageValidator",
    "SafetyCheck",
    "SafetyChecker",
    "SafetyLevel",
    "Severity",
    "calculate_safety_level",
]
