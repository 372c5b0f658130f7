"""
Agents module exports.
"""

from testpilot.agents.action_planner import ActionPlanner, filter_candidates_by_intent
from testpilot.agents.base_agent import BaseAgent
from testpilot.agents.scenario_normalizer import ScenarioNormalizerAgent
from testpilot.agents.self_healing import SelfHealingController
from testpilot.agents.test_agent import TestAgent, classify_step
from testpilot.agents.verifier import VerificationEngine, normalize_extraction

__all__ = [
    "ActionPlanner",
    "BaseAgent",
    "ScenarioNormalizerAgent",
    "SelfHealingController",
    "TestAgent",
    "VerificationEngine",
    "classify_step",
    "filter_candidates_by_intent",
    "normalize_extraction",
]
