"""
Tests for the scenario normalizer agent.
"""

import pytest

from testpilot.agents.scenario_normalizer import ScenarioNormalizerAgent
from testpilot.core.types import GherkinDocument
from testpilot.error_handling.exceptions import CollaboratorError

LOGIN_SCENARIO = """
Open https://example.com/login, sign in as alice and check that the
greeting says Welcome.
"""

LOGIN_DOCUMENT = {
    "feature": "Login",
    "background": [
        {"keyword": "Given", "text": "the user opens https://example.com/login"},
    ],
    "scenarios": [
        {
            "title": "Successful login",
            "steps": [
                {
                    "keyword": "When",
                    "text": "the user signs in",
                    "table": [
                        {"Field": "User", "Value": "alice"},
                        {"Field": "Password", "Value": "secret"},
                    ],
                },
                {"keyword": "Then", "text": '"Welcome" is shown'},
            ],
        },
        {"title": "Ignored", "steps": [{"keyword": "Then", "text": "never runs"}]},
    ],
}


@pytest.mark.asyncio
async def test_normalize_returns_document(llm):
    llm.queue(GherkinDocument, LOGIN_DOCUMENT)
    agent = ScenarioNormalizerAgent(llm)

    document = await agent.normalize(LOGIN_SCENARIO)

    assert document.feature == "Login"
    assert [step.label for step in document.executable_steps] == [
        "Given the user opens https://example.com/login",
        "When the user signs in",
        'Then "Welcome" is shown',
    ]
    assert document.executable_steps[1].table[1] == {"Field": "Password", "Value": "secret"}
    assert "sign in as alice" in llm.calls_for(GherkinDocument)[0]


@pytest.mark.asyncio
async def test_empty_scenario_is_rejected(llm):
    agent = ScenarioNormalizerAgent(llm)

    with pytest.raises(ValueError, match="empty"):
        await agent.normalize("   \n")

    assert llm.calls == []


@pytest.mark.asyncio
async def test_llm_failure_is_a_collaborator_error(llm):
    llm.queue(GherkinDocument, ConnectionError("connection reset"))
    agent = ScenarioNormalizerAgent(llm)

    with pytest.raises(CollaboratorError, match="connection reset"):
        await agent.normalize(LOGIN_SCENARIO)
