"""LLM package: prompt templates, decision client and response parser."""

from aiopsanalyzer.llm.client import DecisionClient
from aiopsanalyzer.llm.parser import parse_decision
from aiopsanalyzer.llm.prompts import SYSTEM_PROMPT, USER_PROMPT_TEMPLATE, build_prompt

__all__ = [
    "DecisionClient",
    "SYSTEM_PROMPT",
    "USER_PROMPT_TEMPLATE",
    "build_prompt",
    "parse_decision",
]
