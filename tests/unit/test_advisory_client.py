"""
Advisory Client — Unit Tests
Prompt rendering, client settings and the no-key / empty-portfolio
fallbacks. No network.
"""

from __future__ import annotations

import sys
from types import SimpleNamespace

import pytest

from allocation_engine.agents.rebalancing_advisor import run_rebalancing_pipeline
from allocation_engine.tools.advisory_client import build_advisory_prompt, request_advisory_payload

from tests.fixtures.conftest import SAMPLE_HOLDINGS, SCENARIO_B_HOLDINGS, SCENARIO_TARGETS


class TestBuildAdvisoryPrompt:

    @pytest.mark.behavior
    def test_prompt_carries_engine_numbers(self):
        prompt = build_advisory_prompt(run_rebalancing_pipeline(SAMPLE_HOLDINGS))
        assert "CURRENT PORTFOLIO VALUE: $100,000.00" in prompt
        assert "- ETF: $42,000.00 (42.0%)" in prompt
        assert "- Bitcoin (crypto): $20,000.00 (20.0%)" in prompt
        assert "- crypto: 20.0% vs target 0.0% (high, reduce by 20.0)" in prompt

    @pytest.mark.behavior
    def test_prompt_lists_every_alert(self):
        analysis = run_rebalancing_pipeline(SCENARIO_B_HOLDINGS, SCENARIO_TARGETS)
        prompt = build_advisory_prompt(analysis)
        assert "- stocks: 90.0% vs target 60.0% (high, reduce by 30.0)" in prompt
        assert "- bonds: 0.0% vs target 30.0% (high, increase by 30.0)" in prompt

    @pytest.mark.behavior
    def test_balanced_prompt(self):
        analysis = run_rebalancing_pipeline(
            [{"asset_class": "stocks", "current_value": 100}], {"stocks": 1.0},
        )
        assert "- none, allocation is within target ranges" in build_advisory_prompt(analysis)

    @pytest.mark.behavior
    def test_prompt_carries_target_allocation(self):
        prompt = build_advisory_prompt(run_rebalancing_pipeline(SAMPLE_HOLDINGS))
        assert "TARGET ALLOCATION:" in prompt
        assert "- Stocks: 60.0% (includes ETF, Mutual Funds)" in prompt
        assert "- Bonds: 30.0%\n" in prompt
        assert "- Cryptocurrency: 0.0%" in prompt

    @pytest.mark.behavior
    def test_prompt_without_targets(self):
        analysis = run_rebalancing_pipeline(SCENARIO_B_HOLDINGS, {"targets": {}})
        assert "- No specific target provided, suggest an optimal allocation" in (
            build_advisory_prompt(analysis)
        )

    @pytest.mark.behavior
    def test_prompt_requests_cost_estimate(self):
        prompt = build_advisory_prompt(run_rebalancing_pipeline(SCENARIO_B_HOLDINGS, SCENARIO_TARGETS))
        assert "- estimated_costs: number (estimated transaction costs in dollars)" in prompt
        assert "—" not in prompt


class TestRequestAdvisoryPayload:

    @pytest.mark.behavior
    def test_empty_portfolio_skips_request(self):
        assert request_advisory_payload(run_rebalancing_pipeline([])) is None

    @pytest.mark.behavior
    def test_missing_api_key_returns_none(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_AUTH_TOKEN", raising=False)
        assert request_advisory_payload(run_rebalancing_pipeline(SAMPLE_HOLDINGS), timeout=1.0) is None

    @pytest.mark.behavior
    def test_client_built_without_retries(self, monkeypatch):
        created = {}

        class FakeMessages:
            def create(self, **kwargs):
                created["request"] = kwargs
                return SimpleNamespace(content=[SimpleNamespace(text='{"summary": "ok", "actions": []}')])

        class FakeClient:
            def __init__(self, **kwargs):
                created["client"] = kwargs
                self.messages = FakeMessages()

        monkeypatch.setitem(sys.modules, "anthropic", SimpleNamespace(Anthropic=FakeClient))
        text = request_advisory_payload(run_rebalancing_pipeline(SAMPLE_HOLDINGS), timeout=2.5)

        assert text == '{"summary": "ok", "actions": []}'
        assert created["client"]["timeout"] == 2.5
        assert created["client"]["max_retries"] == 0
        assert "TARGET ALLOCATION:" in created["request"]["messages"][0]["content"]
