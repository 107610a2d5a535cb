"""
Mock LLM implementation for testing and development without API keys
"""
import json
import re
from typing import Any, Callable, Union

MockResponse = Union[str, Exception, Callable[[str], str]]

_WORK_PACKAGE_ID = re.compile(r"WORK PACKAGE ID: (\S+)")


def _batch_response(prompt: str) -> str:
    """One entry per work package named in a batch prompt."""
    strategy = json.loads(CANNED_RESPONSES["strategy"])
    return json.dumps([
        {
            "workPackageId": work_package_id,
            "bidAnalysis": strategy["bid_analysis"],
            "winThemes": strategy["win_themes"],
            "content": CANNED_RESPONSES["content_generation"],
        }
        for work_package_id in _WORK_PACKAGE_ID.findall(prompt)
    ])


CANNED_RESPONSES: dict[str, MockResponse] = {
    "requirement_extraction": json.dumps([
        {"id": "req-1", "text": "Describe the delivery methodology", "priority": "mandatory", "source": "RFT Section 3"},
        {"id": "req-2", "text": "Provide three relevant case studies", "priority": "mandatory", "source": "RFT Section 4"},
        {"id": "req-3", "text": "Outline the quality assurance approach", "priority": "optional", "source": "RFT Section 5"},
    ]),
    "rft_analysis": json.dumps({
        "documents": [
            {
                "document_type": "Methodology Statement",
                "description": "How the services will be delivered",
                "requirements": ["Describe the delivery methodology"],
            },
            {
                "document_type": "Case Studies",
                "description": "Evidence of comparable work",
                "requirements": ["Provide three relevant case studies"],
            },
        ]
    }),
    "strategy": json.dumps({
        "bid_analysis": {
            "criteria": [
                {"name": "Customer Relationship", "score": 3, "reasoning": "Some prior contact"},
                {"name": "Strategic Alignment", "score": 4, "reasoning": "Core service line"},
                {"name": "Capability", "score": 4, "reasoning": "Relevant team in place"},
                {"name": "Competitive Position", "score": 3, "reasoning": "Two known competitors"},
                {"name": "Resource Availability", "score": 4, "reasoning": "Team available"},
                {"name": "Profitability", "score": 3, "reasoning": "Standard margins"},
            ],
            "recommendation": "bid",
            "reasoning": "Good strategic fit with manageable risk",
            "strengths": ["Relevant delivery experience"],
            "weaknesses": ["Limited presence with this client"],
        },
        "win_themes": [
            "Proven delivery on comparable programmes",
            "Local team with rapid mobilisation",
            "Measurable quality assurance",
        ],
    }),
    "win_themes": json.dumps({
        "win_themes": [
            "Proven delivery on comparable programmes",
            "Local team with rapid mobilisation",
        ]
    }),
    "content_generation": (
        "# Methodology Statement\n\n"
        "## Our Approach\n\n"
        "We deliver through a **phased** programme.\n\n"
        "- Mobilisation\n- Delivery\n- Review\n"
    ),
    "editor_action": "Revised text generated by the mock editor.",
    "batch_generation": _batch_response,
}


class MockLLMClient:
    """
    Deterministic LLMClient for tests and offline development.

    Per-task responses can be overridden through ``responses``; a value may be
    a string, a callable taking the prompt, or an exception to raise.
    """

    model_name = "mock-claude"

    def __init__(self, responses: dict[str, MockResponse] | None = None):
        self.responses: dict[str, MockResponse] = dict(responses or {})
        self.calls: list[dict[str, Any]] = []

    def generate_text(
        self,
        prompt: str,
        task_type: str = "content_generation",
        system_message: str | None = None,
    ) -> str:
        self.calls.append({"prompt": prompt, "task_type": task_type, "system_message": system_message})

        response = self.responses.get(task_type, CANNED_RESPONSES.get(task_type, "Mock response"))
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response

    def calls_for(self, task_type: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["task_type"] == task_type]
