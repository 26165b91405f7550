"""
Task Skill Analyzer for Agenta

Infers the skills a task requires or exercises. Used twice in a task's life:
- when a manager creates a task without skills (prefills skillsRequired)
- when a task completes (the skills whose ratings are updated)

The LLM path asks for 3-8 concise skill names as a JSON array. Without a key,
or when the call fails or returns nothing parseable, keyword rules take over.

Also writes assignee-facing support text (expanded description, task aid);
those return None when no provider is available.
Nothing in this module raises for LLM problems.
"""

import json
import re
from typing import List, Optional, Sequence

from config import LLMConfig
from models.core_models import ProjectAssignment
from services.llm_client import call_llm


# Keyword rules for the rule-based fallback (pattern -> skills)
FALLBACK_SKILL_RULES = [
    (r"api|integration|rest", ["REST APIs", "Backend integration"]),
    (r"dashboard|admin|ui|redesign", ["React", "TypeScript", "UI components"]),
    (r"e2e|cypress|test", ["Cypress", "E2E testing", "Jest"]),
    (r"mobile|responsive|layout", ["React", "CSS", "Responsive design"]),
    (r"database|migration|postgres", ["PostgreSQL", "SQL", "Migrations"]),
    (r"doc|documentation", ["Technical writing", "API documentation"]),
    (r"security|audit|auth", ["Security audit", "Authentication"]),
    (r"performance|optimize|query", ["Performance profiling", "SQL optimization"]),
]
DEFAULT_FALLBACK_SKILLS = ["Project delivery", "Collaboration"]

ANALYZE_PROMPT = (
    "You are a skills analyst. Given a completed work task, list 3 to 8 specific skills that this "
    "task would demonstrate or develop. Use concise skill names (e.g. \"React\", \"REST APIs\", "
    "\"E2E testing\", \"PostgreSQL\"). If the task relates to existing skills ({existing}), you may "
    "include those or more specific variants. Reply with a JSON array of strings only, no other text."
)

DESCRIPTION_PROMPT = (
    "List 3 to 8 specific skills required or used for this task. Use concise skill names "
    "(e.g. \"React\", \"REST APIs\", \"PostgreSQL\"). Reply with a JSON array of strings only."
)


def fallback_skills(title: str, description: Optional[str] = None) -> List[str]:
    """
    Rule-based skills from keywords in the title and description.

    Args:
        title (str): Task title
        description (Optional[str]): Task description

    Returns:
        List[str]: Deduplicated skills in rule order; generic skills when nothing matches
    """
    text = f"{title or ''} {description or ''}".lower()
    skills: List[str] = []
    for pattern, rule_skills in FALLBACK_SKILL_RULES:
        if re.search(pattern, text):
            skills.extend(rule_skills)
    if not skills:
        skills.extend(DEFAULT_FALLBACK_SKILLS)
    # dict preserves first-seen order
    return list(dict.fromkeys(skills))


def parse_json_array(text: Optional[str]) -> list:
    """
    Extract the first [...] block from model output and parse it.

    Returns:
        list: Parsed list, or [] when no valid JSON array is present
    """
    if not text:
        return []
    match = re.search(r"\[[\s\S]*\]", text)
    if not match:
        return []
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return []
    return parsed if isinstance(parsed, list) else []


def _clean_skill_list(items: list) -> List[str]:
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def _skills_from_llm(config: LLMConfig, prompt: str, complete=None) -> List[str]:
    messages = [{"role": "user", "content": prompt}]
    if complete is not None:
        text = complete(messages)
    else:
        text = call_llm(config, messages, temperature=0.3, max_tokens=256)
    return _clean_skill_list(parse_json_array(text))


def analyze_task_skills(
    config: LLMConfig,
    title: str,
    description: str = "",
    existing_skills: Optional[Sequence[str]] = None,
    complete=None
) -> List[str]:
    """
    Infer 3-8 skills demonstrated by a completed task.

    Args:
        config (LLMConfig): LLM configuration
        title (str): Task title
        description (str): Task description
        existing_skills: The assignee's current skills (for coherent naming)
        complete: Optional injected completion function (messages -> text)

    Returns:
        List[str]: Skills from the LLM, or fallback_skills() when unavailable
    """
    if not config.is_enabled and complete is None:
        return fallback_skills(title, description)

    existing = ", ".join(existing_skills or []) or "none"
    prompt = f"Task title: {title}\nDescription: {description}\n\n{ANALYZE_PROMPT.format(existing=existing)}"

    skills = _skills_from_llm(config, prompt, complete)
    if skills:
        print(f"[Skill Analyzer] ✅ LLM inferred {len(skills)} skills for '{title}'")
        return skills

    print(f"[Skill Analyzer] ⚠️  No skills from LLM for '{title}', using keyword rules")
    return fallback_skills(title, description)


def get_skills_from_description(
    config: LLMConfig,
    title: str,
    description: str = "",
    complete=None
) -> List[str]:
    """
    Infer the skills a new task requires (prefills skillsRequired).

    Returns:
        List[str]: Skills from the LLM, or fallback_skills() when unavailable
    """
    if not config.is_enabled and complete is None:
        return fallback_skills(title, description)

    prompt = f"Task: {title}\n{description}\n\n{DESCRIPTION_PROMPT}"

    skills = _skills_from_llm(config, prompt, complete)
    if skills:
        return skills
    return fallback_skills(title, description)


def resolve_completion_skills(
    analyzed_skills: Optional[Sequence[str]],
    assignment: ProjectAssignment
) -> List[str]:
    """
    Pick the skills whose ratings a completion updates.

    First non-empty of: analyzed skills, the assignment's skillsUsed,
    its skillsRequired, keyword fallback.
    """
    for candidate in (analyzed_skills, assignment.skills_used, assignment.skills_required):
        if candidate:
            return list(candidate)
    return fallback_skills(assignment.title, assignment.description)


# ============================================================================
# Task support text for the assignee (no fallback text: None means "not available")
# ============================================================================

EXPAND_SYSTEM_PROMPT = "You output only the requested task description, no preamble or headings."
AID_SYSTEM_PROMPT = "You output only the requested guidance text, no preamble or titles."
MIN_EXISTING_DESCRIPTION = 20  # Shorter notes are ignored when expanding


def _text_from_llm(config: LLMConfig, messages, temperature: float, max_tokens: int, complete=None) -> Optional[str]:
    if complete is not None:
        text = complete(messages)
    else:
        text = call_llm(config, messages, temperature=temperature, max_tokens=max_tokens)
    if not isinstance(text, str) or not text.strip():
        return None
    return text.strip()


def expand_task_description(
    config: LLMConfig,
    title: str,
    existing_description: Optional[str] = None,
    complete=None
) -> Optional[str]:
    """
    Write a 2 to 4 sentence description of what the assignee should do.

    Existing notes longer than 20 characters are passed along (first 500 chars).

    Returns:
        Optional[str]: Description, or None without a provider key or on failure
    """
    if not config.is_enabled and complete is None:
        return None

    notes = (existing_description or "").strip()
    if len(notes) > MIN_EXISTING_DESCRIPTION:
        prompt = (
            "Below is a work task. Write a clear 2 to 4 sentence description of what the employee "
            "should do, based on the title and any notes. Output only the description, no labels.\n\n"
            f"Title: {title}\nNotes: {notes[:500]}"
        )
    else:
        prompt = (
            "Below is a work task title. Write a brief 2 to 4 sentence description of what the employee "
            "should do. Be specific and actionable. Output only the description, no labels.\n\n"
            f"Title: {title}"
        )

    messages = [
        {"role": "system", "content": EXPAND_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
    return _text_from_llm(config, messages, temperature=0.3, max_tokens=320, complete=complete)


def get_task_aid(
    config: LLMConfig,
    title: str,
    description: Optional[str] = None,
    complete=None
) -> Optional[str]:
    """
    Practical guidance for the assignee: suggested steps, pitfalls, best practices.

    Returns:
        Optional[str]: 3-5 bullets or a short paragraph, or None when unavailable
    """
    if not config.is_enabled and complete is None:
        return None

    desc = (description or "").strip()[:800]
    task_block = f"Task: {title}\nDescription: {desc}" if desc else f"Task: {title}"
    subject = "this task" if desc else "this task title"
    prompt = (
        f"You are a helpful work coach. Given {subject}, write brief practical guidance to help "
        f"the employee succeed.\n\n{task_block}\n\n"
        "Provide 3 to 5 short bullets or a short paragraph with: suggested steps, things to watch for, "
        "or best practices. Be concise and actionable. Output only the guidance, no headings or labels."
    )

    messages = [
        {"role": "system", "content": AID_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
    text = _text_from_llm(config, messages, temperature=0.35, max_tokens=400, complete=complete)
    if text is None:
        print(f"[Skill Analyzer] ⚠️  No task aid available for '{title}'")
    return text
