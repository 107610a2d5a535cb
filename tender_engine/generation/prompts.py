"""
Prompt builders for each generation stage.

Each builder returns the user prompt; the matching system prompts are module
constants.
"""
from tender_engine.models import ProjectInfo, Requirement, WorkPackageInfo

TENDER_WRITER_SYSTEM = (
    "You are an expert bid writer who prepares winning tender responses. "
    "You write in clear, persuasive, professional British English and never "
    "invent certifications, projects or figures that are not in the source material."
)

JSON_ONLY = "Respond with valid JSON only, with no commentary before or after it."

BID_CRITERIA = [
    "Customer Relationship",
    "Strategic Alignment",
    "Capability",
    "Competitive Position",
    "Resource Availability",
    "Profitability",
]


def format_requirements(requirements: list[Requirement]) -> str:
    if not requirements:
        return "No specific requirements listed."
    lines = []
    for index, requirement in enumerate(requirements, start=1):
        tag = "" if requirement.priority == "mandatory" else " (optional)"
        lines.append(f"{index}. {requirement.text}{tag}")
    return "\n".join(lines)


def _project_header(project: ProjectInfo) -> str:
    header = f"Project: {project.name}"
    if project.client_name:
        header += f"\nClient: {project.client_name}"
    if project.deadline:
        header += f"\nDeadline: {project.deadline}"
    return header


def build_extract_requirements_prompt(rft_text: str, document_type: str) -> str:
    return f"""Read the Request for Tender below and list every requirement that the
"{document_type}" document must address.

RFT documents:
{rft_text}

For each requirement return an object with:
- "id": a short identifier such as "req-1"
- "text": the requirement in one sentence
- "priority": "mandatory" if the RFT says must/shall/required, otherwise "optional"
- "source": the RFT section or page it came from, if known

Keep the order in which the requirements appear in the RFT.
{JSON_ONLY} Return a JSON array of requirement objects."""


def build_analyze_rft_prompt(rft_text: str, project_name: str, instructions: str | None = None) -> str:
    extra = f"\nAdditional instructions from the bid team:\n{instructions}\n" if instructions else ""
    return f"""Analyse the Request for Tender for the project "{project_name}" and identify each
separate document the bidder must submit (for example a methodology statement,
case studies, a pricing schedule or a risk register).
{extra}
RFT documents:
{rft_text}

{JSON_ONLY} Return an object of the form:
{{"documents": [{{"document_type": "...", "description": "...", "requirements": ["..."]}}]}}"""


def build_strategy_prompt(
    project: ProjectInfo,
    work_package: WorkPackageInfo,
    organization_text: str,
    rft_text: str,
) -> str:
    criteria = "\n".join(f"- {name}" for name in BID_CRITERIA)
    return f"""{_project_header(project)}
Document: {work_package.document_type}
{work_package.description or ''}

Requirements:
{format_requirements(work_package.requirements)}

Organization capability documents:
{organization_text or 'No organization documents provided.'}

RFT documents:
{rft_text or 'No RFT documents provided.'}

Task 1: assess whether the organization should bid. Score each criterion from 0 to 5:
{criteria}

Task 2: write 3 to 5 win themes for this document. Each win theme is one sentence
linking a specific organization strength to something the client needs.

{JSON_ONLY} Return:
{{"bid_analysis": {{"criteria": [{{"name": "...", "score": 0, "reasoning": "..."}}],
  "recommendation": "bid" or "no-bid", "reasoning": "...",
  "strengths": ["..."], "weaknesses": ["..."]}},
 "win_themes": ["..."]}}"""


def build_win_themes_prompt(
    project: ProjectInfo,
    work_package: WorkPackageInfo,
    organization_text: str,
    rft_text: str,
) -> str:
    return f"""{_project_header(project)}
Document: {work_package.document_type}

Requirements:
{format_requirements(work_package.requirements)}

Organization capability documents:
{organization_text or 'No organization documents provided.'}

RFT documents:
{rft_text or 'No RFT documents provided.'}

Write 3 to 5 win themes for this document. Each is a single sentence that ties a
concrete organization strength to a client need stated in the RFT.

{JSON_ONLY} Return: {{"win_themes": ["..."]}}"""


def build_content_prompt(
    project: ProjectInfo,
    work_package: WorkPackageInfo,
    win_themes: list[str],
    organization_text: str,
    rft_text: str,
    instructions: str | None = None,
) -> str:
    themes = "\n".join(f"- {theme}" for theme in win_themes)
    extra = instructions or project.instructions
    extra_block = f"\nInstructions from the bid team:\n{extra}\n" if extra else ""
    return f"""{_project_header(project)}
Write the complete "{work_package.document_type}" for this tender.
{work_package.description or ''}

Requirements to address (answer every mandatory one explicitly):
{format_requirements(work_package.requirements)}

Win themes to weave through the document:
{themes}
{extra_block}
Organization capability documents (the only source of evidence you may cite):
{organization_text or 'No organization documents provided.'}

RFT documents:
{rft_text or 'No RFT documents provided.'}

Format the document in Markdown using #, ## and ### headings, paragraphs, bullet
lists and numbered lists. Return the document only, with no preamble."""


def build_batch_prompt(
    project: ProjectInfo,
    work_packages: list[WorkPackageInfo],
    organization_text: str,
    rft_text: str,
    instructions: str | None = None,
) -> str:
    """Strategy, win themes and content for several work packages in one call."""
    packages = []
    for index, work_package in enumerate(work_packages, start=1):
        packages.append(
            f"{index}. WORK PACKAGE ID: {work_package.id}\n"
            f"Type: {work_package.document_type}\n"
            f"Description: {work_package.description or 'Not provided'}\n"
            f"Requirements:\n{format_requirements(work_package.requirements)}"
        )
    criteria = ", ".join(BID_CRITERIA)
    extra = instructions or project.instructions or "None provided"
    return f"""{_project_header(project)}

Organization capability documents (shared by every document below):
{organization_text or 'No organization documents provided.'}

RFT documents (shared by every document below):
{rft_text or 'No RFT documents provided.'}

Work packages to generate ({len(work_packages)} documents):
{chr(10).join(packages)}

Instructions from the bid team:
{extra}

For EACH work package, independently of the others:
1. Score the bid from 0 to 5 on each criterion: {criteria}.
2. Write 3 to 5 win themes specific to that work package's requirements.
3. Write the complete document in Markdown, answering every mandatory requirement.

{JSON_ONLY} Return a JSON array with exactly one entry per work package:
[{{"workPackageId": "...",
  "bidAnalysis": {{"criteria": [{{"name": "...", "score": 0, "reasoning": "..."}}],
    "recommendation": "bid" or "no-bid", "reasoning": "...",
    "strengths": ["..."], "weaknesses": ["..."]}},
  "winThemes": ["..."],
  "content": "..."}}]"""


def build_expand_prompt(selected_text: str, full_document: str, organization_text: str) -> str:
    return f"""Selected text to expand:
"{selected_text}"

Full document for context:
{full_document}

Supporting organization knowledge:
{organization_text or 'None provided.'}

Expand the selected text with two or three further paragraphs of specific detail,
examples and evidence from the organization knowledge. Keep the original tone.
Return only the expanded text, including the original. No preamble."""


def build_shorten_prompt(selected_text: str) -> str:
    return f"""Text to shorten:
"{selected_text}"

Condense this text to roughly half its length, keeping every key point and a
professional tone. Return only the shortened text. No preamble."""


def build_add_evidence_prompt(selected_text: str, organization_text: str) -> str:
    return f"""Statement that needs supporting evidence:
"{selected_text}"

Organization documents (case studies, certifications, projects):
{organization_text or 'None provided.'}

Add one or two paragraphs of supporting evidence taken from the organization
documents: project examples, certifications, measurable results. Return the
original text with the evidence woven in. No preamble."""


def build_rephrase_prompt(selected_text: str, tone: str | None = None) -> str:
    return f"""Text to rephrase:
"{selected_text}"

Rephrase this text in a {tone or 'professional'} tone. Preserve all information,
improve clarity and keep the formality expected of a tender document.
Return only the rephrased text. No preamble."""


def build_check_compliance_prompt(selected_text: str, requirements: list[Requirement]) -> str:
    return f"""Text to check:
"{selected_text}"

Requirements:
{format_requirements(requirements)}

Review the text against the requirements. List which requirements are fully
addressed, partially addressed or missing, then suggest specific wording to close
each gap. Return the review in Markdown."""


def build_custom_prompt(selected_text: str, full_document: str, instruction: str) -> str:
    return f"""Selected text:
"{selected_text}"

Full document for context:
{full_document}

Instruction: {instruction}

Apply the instruction to the selected text and return only the revised text.
No preamble."""
