import asyncio
import sys
import os

# Set unbuffered output
sys.stdout.reconfigure(line_buffering=True)

# Add the project root to sys.path
sys.path.append(os.getcwd())

from mindy.safety.validator import PackageValidator

async def run_safety_test(validator: PackageValidator, package: str, source: str, expected_allowed: bool):
    print(f"\nValidating Package: '{package}' ({source})", flush=True)
    try:
        report = await validator.validate(package, source)

        status = "✅ PASS" if report.allow_installation == expected_allowed else "❌ FAIL"
        print(f"{status}: {report.safety_level.value.upper()} (allow={report.allow_installation})", flush=True)
        for check in report.checks:
            mark = "✓" if check.passed else "✗"
            print(f"    {mark} {check.name}: {check.message}", flush=True)
        for error in report.errors:
            print(f"    ! {error}", flush=True)
    except Exception as e:
        print(f"❌ ERROR: {e}", flush=True)

async def main():
    print("--- Testing Package Validator (live registries) ---", flush=True)

    test_cases = [
        ("dplyr", "cran", True),
        ("jsonlite", "cran", True),
        ("leftpad-clone", "cran", False),
        ("this.package.does.not.exist", "cran", False),
        ("tidyverse/dplyr", "github", True),
    ]

    async with PackageValidator() as validator:
        for package, source, expected in test_cases:
            await run_safety_test(validator, package, source, expected)


if __name__ == "__main__":
    asyncio.run(main())
