"""
Tests for the step dispatcher.
"""

import logging

import pytest

from testpilot.agents.test_agent import TestAgent, classify_step, find_url
from testpilot.core.types import (
    ActionPlan,
    CandidateAction,
    HealingPlan,
    Step,
    StepKind,
    VerificationPlan,
)
from testpilot.error_handling.exceptions import (
    BrowserError,
    PreconditionVerificationError,
    SelfHealingExhaustedError,
    VerificationFailedError,
)


@pytest.fixture
def agent(mock_page, context, llm, settings):
    return TestAgent(mock_page, context, fast_llm=llm, default_llm=llm, settings=settings)


@pytest.mark.parametrize("keyword,kind", [
    ("Given", StepKind.PRECONDITION),
    ("given", StepKind.PRECONDITION),
    ("When", StepKind.ACTION),
    ("Then", StepKind.VERIFICATION),
    ("And", StepKind.VERIFICATION),
    ("But", StepKind.UNKNOWN),
    ("前提", StepKind.UNKNOWN),
])
def test_classify_step(keyword, kind):
    assert classify_step(keyword) == kind


@pytest.mark.parametrize("text,url", [
    ("the user opens https://example.com/login", "https://example.com/login"),
    ('the page "https://example.com/a?b=1" is open', "https://example.com/a?b=1"),
    ("ページ「https://example.jp/top」を開く", "https://example.jp/top"),
    ("(see http://localhost:3000)", "http://localhost:3000"),
    ("the login page is open", None),
])
def test_find_url(text, url):
    assert find_url(text) == url


class TestPrecondition:
    """Tests for precondition steps."""

    @pytest.mark.asyncio
    async def test_navigates_and_verifies_prefix(self, agent, mock_page):
        mock_page.current_location.return_value = "https://example.com/login?next=/home"

        result = await agent.process_step(Step(keyword="Given", text="the user opens https://example.com/login"))

        assert result is None
        mock_page.navigate.assert_awaited_once_with("https://example.com/login", 30000)
        mock_page.wait_for_load.assert_awaited_once_with("domcontentloaded", 15000)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("actual", ["about:blank", "https://example.com/error"])
    async def test_mismatch_is_fatal_and_not_healed(self, agent, mock_page, llm, actual):
        mock_page.current_location.return_value = actual

        with pytest.raises(PreconditionVerificationError) as exc_info:
            await agent.process_step(Step(keyword="Given", text="the user opens https://example.com/login"))

        assert exc_info.value.actual_url == actual
        assert llm.calls_for(HealingPlan) == []

    @pytest.mark.asyncio
    async def test_without_url_plans_an_action(self, agent, mock_page, llm):
        llm.queue(ActionPlan, {"locate_query": "Find the login link", "intended_action": "click"})
        candidate = CandidateAction(method="click", selector="a.login")
        mock_page.locate.return_value = [candidate]

        result = await agent.process_step(Step(keyword="Given", text="the user is on the login page"))

        assert result is candidate
        mock_page.navigate.assert_not_awaited()


class TestActionAndVerification:
    """Tests for action and verification routing."""

    @pytest.mark.asyncio
    async def test_action_returns_candidate(self, agent, mock_page, llm):
        llm.queue(ActionPlan, {"locate_query": "Find the login button", "intended_action": "click"})
        candidate = CandidateAction(method="click", selector="#login")
        mock_page.locate.return_value = [candidate]

        assert await agent.process_step(Step(keyword="When", text="the user clicks Login")) is candidate

    @pytest.mark.asyncio
    async def test_action_planning_is_healed_until_exhausted(self, agent, mock_page, llm):
        llm.queue(ActionPlan, {"locate_query": "Find the login button", "intended_action": "click"})
        llm.queue(HealingPlan, {"cause_analysis": "renamed", "alternative_instruction": "Click Sign in"})
        mock_page.locate.return_value = []

        with pytest.raises(SelfHealingExhaustedError, match="the user clicks Login"):
            await agent.process_step(Step(keyword="When", text="the user clicks Login"))

        assert len(llm.calls_for(ActionPlan)) == 3
        assert len(llm.calls_for(HealingPlan)) == 2

    @pytest.mark.asyncio
    async def test_unknown_keyword_is_treated_as_action(self, agent, mock_page, llm, caplog):
        llm.queue(ActionPlan, {"locate_query": "Find the menu", "intended_action": "hover"})
        candidate = CandidateAction(method="hover", selector="#menu")
        mock_page.locate.return_value = [candidate]

        with caplog.at_level(logging.WARNING):
            result = await agent.process_step(Step(keyword="But", text="hovers the menu"))

        assert result is candidate
        assert "Unknown keyword 'But'" in caplog.text

    @pytest.mark.asyncio
    async def test_step_context_is_attached_to_records(self, agent, mock_page, llm, caplog):
        llm.queue(ActionPlan, {"locate_query": "Find the login button", "intended_action": "click"})
        mock_page.locate.return_value = [CandidateAction(method="click", selector="#login")]

        with caplog.at_level(logging.INFO, logger="testpilot.agent.test_agent"):
            await agent.process_step(Step(keyword="When", text="the user clicks Login"))

        record = next(r for r in caplog.records if r.name == "testpilot.agent.test_agent")
        assert record.step == "When the user clicks Login"
        assert record.step_kind == "action"

    @pytest.mark.asyncio
    async def test_passing_verification_returns_true(self, agent, mock_page, llm):
        llm.queue(VerificationPlan, {
            "assertion": {
                "kind": "text",
                "extract_query": "Extract the greeting",
                "expected": "Welcome",
                "operator": "contains",
            }
        })
        mock_page.extract.return_value = "Welcome back, Alice! Welcome."

        assert await agent.process_step(Step(keyword="Then", text='"Welcome" is shown')) is True

    @pytest.mark.asyncio
    async def test_failed_verification_raises_and_is_not_healed(self, agent, mock_page, llm):
        llm.queue(VerificationPlan, {
            "assertion": {"kind": "element_state", "locate_query": "Find the logout link", "check": "exists"}
        })
        mock_page.locate.return_value = []

        with pytest.raises(VerificationFailedError, match='Verification step "the user is logged in" failed'):
            await agent.process_step(Step(keyword="And", text="the user is logged in"))

        assert len(llm.calls_for(VerificationPlan)) == 1
        assert llm.calls_for(HealingPlan) == []

    @pytest.mark.asyncio
    async def test_failed_verification_carries_reason(self, agent, mock_page, llm):
        llm.queue(VerificationPlan, {
            "assertion": {"kind": "element_state", "locate_query": "Find the logout link", "check": "exists"}
        })
        mock_page.locate.return_value = []

        with pytest.raises(VerificationFailedError) as exc_info:
            await agent.process_step(Step(keyword="Then", text="the user is logged in"))

        assert exc_info.value.reason == 'element not found: "Find the logout link"'
        assert "Reason: element not found" in str(exc_info.value)
        assert exc_info.value.details["reason"] == exc_info.value.reason


class TestExecuteStep:
    """Tests for execute_step."""

    @pytest.mark.asyncio
    async def test_executes_candidate_and_waits_for_settle(self, agent, mock_page, llm):
        llm.queue(ActionPlan, {"locate_query": "Find the login button", "intended_action": "click"})
        candidate = CandidateAction(method="click", selector="#login")
        mock_page.locate.return_value = [candidate]

        await agent.execute_step(Step(keyword="When", text="the user clicks Login"))

        mock_page.execute.assert_awaited_once_with(candidate)
        mock_page.wait_for_load.assert_awaited_once_with("domcontentloaded", 15000)

    @pytest.mark.asyncio
    async def test_settle_timeout_is_not_fatal(self, agent, mock_page, llm):
        llm.queue(ActionPlan, {"locate_query": "Find the login button", "intended_action": "click"})
        mock_page.locate.return_value = [CandidateAction(method="click", selector="#login")]
        mock_page.wait_for_load.side_effect = BrowserError("Timeout 15000ms exceeded")

        await agent.execute_step(Step(keyword="When", text="the user clicks Login"))

        mock_page.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_verification_executes_nothing(self, agent, mock_page, llm):
        llm.queue(VerificationPlan, {
            "assertion": {"kind": "element_state", "locate_query": "Find the logout link", "check": "not_exists"}
        })

        assert await agent.execute_step(Step(keyword="Then", text="the user is logged out")) is True
        mock_page.execute.assert_not_awaited()
