#!/usr/bin/env python3
"""
Test runner script for the Planet Board tests.

This script provides convenient commands to run the different test suites
with appropriate configurations and options.
"""

import argparse
import os
import subprocess
import sys


def run_command(cmd, description=""):
    """Run a command and return its exit code."""
    if description:
        print(f"\n{'='*60}")
        print(f"{description}")
        print(f"{'='*60}")

    print(f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd)
    return result.returncode


def setup_test_environment():
    """Set up test environment variables."""
    os.environ.setdefault("ENVIRONMENT", "testing")
    os.environ.setdefault("DOCUMENT_STORE", "memory")
    # Keyword extraction instead of Gemini
    os.environ.setdefault("GEMINI_API_KEY", "")
    print("Test environment configured")


def run_suite(path, description, verbose=False, coverage=False):
    cmd = [sys.executable, "-m", "pytest", path]

    if verbose:
        cmd.extend(["-v", "-s"])

    if coverage:
        cmd.extend(["--cov=app", "--cov-report=term-missing"])

    cmd.extend(["--tb=short"])

    return run_command(cmd, description)


def run_all_tests(verbose=False, coverage=True):
    """Run all tests in sequence."""
    test_suites = [
        ("Unit Tests", lambda: run_suite("tests/unit/", "Running Unit Tests", verbose, coverage)),
        ("API Tests", lambda: run_suite("tests/api/", "Running API Tests", verbose)),
        (
            "Integration Tests",
            lambda: run_suite("tests/integration/", "Running Integration Tests", verbose),
        ),
    ]

    results = []
    for suite_name, test_func in test_suites:
        results.append((suite_name, test_func()))

    print(f"\n{'='*60}")
    print("TEST RESULTS SUMMARY")
    print(f"{'='*60}")

    failures = 0
    for suite_name, exit_code in results:
        status = "PASSED" if exit_code == 0 else "FAILED"
        print(f"{suite_name:25} {status}")
        if exit_code != 0:
            failures += 1

    print(f"\nTotal test suites failed: {failures}")
    return failures


def main():
    """Main entry point for the test runner."""
    parser = argparse.ArgumentParser(
        description="Planet Board Test Runner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_tests.py --all                    # Run all tests
  python run_tests.py --unit                   # Run unit tests only
  python run_tests.py --api                    # Run API tests only
  python run_tests.py --integration            # Run integration tests only
  python run_tests.py --specific tests/unit/test_reducer.py
  python run_tests.py --unit --no-coverage     # Unit tests without coverage
        """,
    )

    parser.add_argument("--all", action="store_true", help="Run all test suites")
    parser.add_argument("--unit", action="store_true", help="Run unit tests")
    parser.add_argument("--api", action="store_true", help="Run API tests")
    parser.add_argument("--integration", action="store_true", help="Run integration tests")
    parser.add_argument("--specific", type=str, help="Run specific test file or function")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--no-coverage", action="store_true", help="Disable coverage reporting")

    args = parser.parse_args()
    setup_test_environment()
    coverage = not args.no_coverage

    if args.specific:
        exit_code = run_suite(args.specific, f"Running Specific Test: {args.specific}", args.verbose)
    elif args.unit:
        exit_code = run_suite("tests/unit/", "Running Unit Tests", args.verbose, coverage)
    elif args.api:
        exit_code = run_suite("tests/api/", "Running API Tests", args.verbose)
    elif args.integration:
        exit_code = run_suite("tests/integration/", "Running Integration Tests", args.verbose)
    else:
        exit_code = run_all_tests(args.verbose, coverage)

    sys.exit(1 if exit_code else 0)


if __name__ == "__main__":
    main()
