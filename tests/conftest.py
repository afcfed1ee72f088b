"""Shared fixtures for the test suite."""

import asyncio

import pytest

from dod_gate.core.check import (
    Check,
    CheckCategory,
    CheckOutcome,
    CheckSeverity,
    CheckStatus,
)
from dod_gate.core.profile import Concurrency, Profile, Thresholds


def _make_check(
    check_id,
    status=CheckStatus.PASS,
    category=CheckCategory.BUILD_CORRECTNESS,
    severity=CheckSeverity.FATAL,
    deps=(),
    delay=0.0,
    calls=None,
    error=None,
    evidence=b"",
    remediation=(),
):
    async def run(context):
        if calls is not None:
            calls.append(check_id)
        if delay:
            await asyncio.sleep(delay)
        if error is not None:
            raise error
        return CheckOutcome(status, f"{check_id} {status.value}", evidence, tuple(remediation))

    return Check(check_id, category, severity, run, frozenset(deps), description=f"{check_id} test check")


def _make_profile(
    required=(),
    optional=(),
    weights=None,
    concurrency=None,
    min_score=0.0,
    max_warnings=20,
    require_all_tests_pass=False,
    fail_fast=False,
    timeouts=None,
    default_timeout=5.0,
    name="test",
):
    return Profile(
        name=name,
        required_checks=frozenset(required),
        optional_checks=frozenset(optional),
        category_weights=weights if weights is not None else {
            CheckCategory.BUILD_CORRECTNESS: 1.0,
            CheckCategory.TEST_TRUTH: 1.0,
        },
        timeouts=timeouts or {},
        default_timeout=default_timeout,
        concurrency=concurrency or Concurrency.parallel(4),
        thresholds=Thresholds(
            min_readiness_score=min_score,
            max_warnings=max_warnings,
            require_all_tests_pass=require_all_tests_pass,
            fail_fast=fail_fast,
        ),
    )


@pytest.fixture
def make_check():
    """Factory for checks with a canned outcome."""
    return _make_check


@pytest.fixture
def make_profile():
    """Factory for profiles with permissive defaults."""
    return _make_profile
