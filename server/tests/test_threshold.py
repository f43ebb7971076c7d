"""
阈值判定测试
- classify: 预警 / 超支 / 无
- 单调性：使用率越高，判定结果不会更轻
- percentage_used: 两位小数、预算 <= 0
- resolve_thresholds: 偏好 > 预算 > 默认，超支固定 100
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from budget_alert.services.threshold import (
    SEVERITY,
    classify,
    percentage_used,
    resolve_thresholds,
)

W = Decimal("80")
C = Decimal("100")


class TestClassify:

    def test_below_warning(self):
        assert classify(Decimal("79.99"), W, C) is None

    def test_warning_boundary_inclusive(self):
        assert classify(Decimal("80"), W, C) == "warning"

    def test_between_warning_and_critical(self):
        assert classify(Decimal("99.99"), W, C) == "warning"

    def test_exceeded_boundary_inclusive(self):
        assert classify(Decimal("100"), W, C) == "exceeded"

    def test_far_over_budget_is_still_exceeded(self):
        assert classify(Decimal("250"), W, C) == "exceeded"

    def test_monotonic(self):
        samples = [Decimal(x) / 4 for x in range(0, 600)]
        results = [SEVERITY[classify(p, W, C)] for p in samples]
        assert results == sorted(results)


class TestPercentageUsed:

    def test_rounds_to_two_places(self):
        assert percentage_used(Decimal("1"), Decimal("3")) == Decimal("33.33")

    def test_scenario_value(self):
        assert percentage_used(Decimal("410"), Decimal("500")) == Decimal("82.00")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_non_positive_budget(self, amount):
        assert percentage_used(Decimal("100"), amount) == Decimal("0")

    def test_malformed_input_treated_as_zero(self):
        assert percentage_used("abc", Decimal("100")) == Decimal("0")


class TestResolveThresholds:

    def test_budget_threshold(self):
        budget = SimpleNamespace(warning_threshold_pct=70)
        t = resolve_thresholds(budget)
        assert t.warning == Decimal("70")
        assert t.critical == Decimal("100")

    def test_default_when_budget_has_none(self):
        budget = SimpleNamespace(warning_threshold_pct=None)
        assert resolve_thresholds(budget).warning == Decimal("80")

    def test_preference_overrides_budget(self):
        budget = SimpleNamespace(warning_threshold_pct=70)
        pref = SimpleNamespace(threshold_warning=50, threshold_critical=90)
        t = resolve_thresholds(budget, pref)
        assert t.warning == Decimal("50")
        # 偏好中的超支阈值不参与判定
        assert t.critical == Decimal("100")

    def test_empty_preference_falls_back(self):
        budget = SimpleNamespace(warning_threshold_pct=75)
        pref = SimpleNamespace(threshold_warning=None, threshold_critical=None)
        assert resolve_thresholds(budget, pref).warning == Decimal("75")
