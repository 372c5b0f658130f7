"""
testpilot - LLM-driven browser test execution from free-text scenarios.
"""

__version__ = "0.1.0"
