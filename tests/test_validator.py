import asyncio

import pytest
from pydantic import ValidationError

from mindy.errors import UnsupportedSource
from mindy.safety.checks import SafetyChecker
from mindy.safety.schemas import BlacklistEntry, CheckCategory, SafetyCheck, SafetyLevel, Severity
from mindy.safety.validator import (
    PackageValidator,
    build_report,
    calculate_safety_level,
    incomplete_report,
    should_allow_installation,
)

from conftest import cran_record, registry


def check(passed: bool, severity: Severity = Severity.INFO, category: CheckCategory = CheckCategory.LICENSE) -> SafetyCheck:
    return SafetyCheck(name="c", category=category, passed=passed, severity=severity, message=f"{severity.value} check")


@pytest.mark.parametrize("checks,expected", [
    ([check(True), check(False, Severity.CRITICAL), check(False, Severity.ERROR)], SafetyLevel.BLOCKED),
    ([check(False, Severity.ERROR), check(False, Severity.WARNING)], SafetyLevel.DANGEROUS),
    ([check(True), check(False, Severity.WARNING)], SafetyLevel.RISKY),
    ([check(True), check(True)], SafetyLevel.SAFE),
    ([check(True), check(False, Severity.INFO)], SafetyLevel.WARNING),
])
def test_safety_level_precedence(checks, expected) -> None:
    assert calculate_safety_level(checks) == expected


def test_blocked_level_never_allows_installation() -> None:
    assert should_allow_installation(SafetyLevel.BLOCKED, []) is False
    assert should_allow_installation(SafetyLevel.DANGEROUS, ["archived"]) is False
    assert should_allow_installation(SafetyLevel.RISKY, []) is True


def test_report_sorts_failures_into_lists() -> None:
    report = build_report("pkg", [
        check(False, Severity.ERROR, CheckCategory.REGISTRY_STATUS),
        check(False, Severity.WARNING, CheckCategory.LICENSE),
        check(False, Severity.WARNING, CheckCategory.COMMUNITY_TRUST),
        check(True),
    ])

    assert report.safety_level == SafetyLevel.DANGEROUS
    assert report.errors == ("error check",)
    assert report.warnings == ("warning check",)
    assert report.recommendations == ("warning check",)
    assert report.allow_installation is False


def test_blocked_report_always_has_errors() -> None:
    report = build_report("pkg", [check(False, Severity.CRITICAL, CheckCategory.BLACKLIST)])

    assert report.safety_level == SafetyLevel.BLOCKED
    assert report.errors
    assert not report.allow_installation


def make_validator(records: dict, blacklist=None) -> PackageValidator:
    checker = SafetyChecker(blacklist=blacklist or [], trusted_maintainers=[])
    return PackageValidator(checker=checker, client=registry(records))


def test_validate_healthy_package_is_safe() -> None:
    validator = make_validator({"goodpkg": cran_record("goodpkg")})

    report = asyncio.run(validator.validate("goodpkg"))

    assert report.safety_level == SafetyLevel.SAFE
    assert report.allow_installation
    assert len(report.checks) == 6


def test_validate_blacklisted_package_is_blocked() -> None:
    validator = make_validator(
        {"leftpad-clone": cran_record("leftpad-clone")},
        blacklist=[BlacklistEntry(package="leftpad-clone", reason="Malicious", severity=Severity.CRITICAL)],
    )

    report = asyncio.run(validator.validate("leftpad-clone"))

    assert report.safety_level == SafetyLevel.BLOCKED
    assert not report.allow_installation
    assert any("Malicious" in error for error in report.errors)


def test_validate_fails_closed_when_metadata_unavailable() -> None:
    validator = make_validator({})

    report = asyncio.run(validator.validate("ghostpkg"))

    assert report.safety_level == SafetyLevel.RISKY
    assert report.allow_installation is False
    assert report.checks == ()
    assert len(report.errors) == 1
    assert report.errors[0].startswith("Validation error:")
    assert report.warnings == ("Unable to perform complete safety check",)


def test_validate_unsupported_source() -> None:
    validator = make_validator({})

    with pytest.raises(UnsupportedSource):
        asyncio.run(validator.validate("limma", source="bioconductor"))
    with pytest.raises(UnsupportedSource):
        asyncio.run(validator.validate_many(["limma"], source="bioconductor"))


def test_validate_many_isolates_failures_and_keeps_order() -> None:
    validator = make_validator({"goodpkg": cran_record("goodpkg"), "otherpkg": cran_record("otherpkg")})

    reports = asyncio.run(validator.validate_many(["goodpkg", "ghostpkg", "otherpkg"]))

    assert [r.package_name for r in reports] == ["goodpkg", "ghostpkg", "otherpkg"]
    assert [r.allow_installation for r in reports] == [True, False, True]


def test_validator_closes_only_its_own_client() -> None:
    client = registry({})

    async def use_injected():
        async with PackageValidator(checker=SafetyChecker(blacklist=[], trusted_maintainers=[]), client=client):
            pass

    asyncio.run(use_injected())
    assert not client.is_closed


def test_report_cannot_be_edited_after_construction() -> None:
    report = incomplete_report("ghostpkg", RuntimeError("boom"))

    with pytest.raises(AttributeError):
        report.errors.clear()
    with pytest.raises(TypeError):
        report.errors[0] = "ok"
    with pytest.raises(ValidationError):
        report.allow_installation = True

    assert report.errors == ("Validation error: boom",)
    assert report.allow_installation is False
