"""CI metadata: branch detection, environment normalization and run metadata.

Playwright copies selected CI variables into ``report.json`` under
``metadata.ci``. Branch detection walks a fixed fallback chain over those
variables and the pull-request fields, stopping at the first hit.
"""

from __future__ import annotations

import re
from typing import Any

from runledger.core.models import UNKNOWN, RunMetadata
from runledger.logging import get_logger

logger = get_logger(__name__)

MAX_BRANCH_LENGTH = 60
TRUNCATION_SUFFIX = "..."

# Head ref first so PR builds report the source branch, not the merge ref
BRANCH_VARIABLES = (
    "GITHUB_HEAD_REF",
    "GITHUB_REF_NAME",
    "BRANCH",
    "GIT_BRANCH",
    "CI_COMMIT_BRANCH",
)

ENVIRONMENT_MAPPING = {
    "preview": "development",
    "dev": "development",
    "prod": "production",
    "stage": "staging",
    "test": "testing",
}

DEFAULT_TRIGGER = "merge_queue"

_UNSAFE_BRANCH_CHARS = re.compile(r"[^a-zA-Z0-9\-_/]")
_TICKET_PATTERN = re.compile(r"^([A-Z]+-\d+)")
_PULL_REQUEST_PATTERN = re.compile(r"/pull/(\d+)$")


def _ci_mapping(ci: Any) -> dict[str, Any]:
    # Reports from foreign tooling may carry a non-object here
    return ci if isinstance(ci, dict) else {}


def sanitize_branch(branch: str) -> str:
    """Replace unsafe characters with ``-`` and cap the length."""
    sanitized = _UNSAFE_BRANCH_CHARS.sub("-", branch)
    if len(sanitized) > MAX_BRANCH_LENGTH:
        return sanitized[:MAX_BRANCH_LENGTH] + TRUNCATION_SUFFIX
    return sanitized


def _branch_from_pull_request(ci: dict[str, Any]) -> str | None:
    title = ci.get("prTitle")
    if isinstance(title, str) and title:
        ticket = _TICKET_PATTERN.match(title)
        if ticket:
            return ticket.group(1)
        title_part = title.split(":", 1)[0].strip()
        if title_part:
            return title_part

    href = ci.get("prHref")
    if isinstance(href, str):
        number = _PULL_REQUEST_PATTERN.search(href)
        if number:
            return f"pr-{number.group(1)}"
    return None


def extract_branch(ci: dict[str, Any] | None, fallback: str = UNKNOWN) -> str:
    """Derive the branch of a run.

    Priority: an explicit ``fallback`` other than ``"unknown"``, then the CI
    branch variables, then the PR title (ticket key, then text before the
    first colon), then ``pr-<n>`` from the PR URL, then ``fallback`` as is.

    Args:
        ci: CI metadata from the report, if any.
        fallback: Branch supplied by the caller.

    Returns:
        Sanitized branch name, or the unmodified fallback when nothing matched.
    """
    if fallback and fallback != UNKNOWN:
        return sanitize_branch(fallback)

    ci = _ci_mapping(ci)
    detected = next((ci[name] for name in BRANCH_VARIABLES if ci.get(name)), None)
    if not detected:
        detected = _branch_from_pull_request(ci)

    if not detected:
        logger.debug("branch_unresolved", fallback=fallback)
        return fallback
    return sanitize_branch(str(detected))


def normalize_environment(environment: str) -> str:
    """Map environment synonyms onto canonical names; unknown labels pass through."""
    return ENVIRONMENT_MAPPING.get(environment.lower(), environment)


def infer_environment(branch: str) -> str:
    """Guess an environment from a branch name when none was supplied."""
    name = branch.lower()
    if "prod" in name or name in ("main", "master"):
        return "production"
    if "stag" in name:
        return "staging"
    return "development"


def infer_trigger(ci: dict[str, Any] | None) -> str:
    """Guess what triggered the run from the CI build URL."""
    build_href = _ci_mapping(ci).get("buildHref") or ""
    if "pull_request" in build_href:
        return "pull_request"
    if "workflow_dispatch" in build_href:
        return "ci"
    return DEFAULT_TRIGGER


def build_run_metadata(
    ci: dict[str, Any] | None,
    *,
    environment: str | None = None,
    trigger: str | None = None,
    branch: str | None = None,
    commit: str | None = None,
    started_at: str | None = None,
) -> RunMetadata:
    """Combine caller-supplied context with CI metadata from the report.

    Caller values win. The commit falls back to the CI ``commitHash``;
    environment and trigger are inferred only when not supplied.
    """
    ci = _ci_mapping(ci)
    resolved_branch = extract_branch(ci, branch or UNKNOWN)
    resolved_environment = (
        normalize_environment(environment) if environment else infer_environment(resolved_branch)
    )

    return RunMetadata(
        environment=resolved_environment,
        branch=resolved_branch,
        trigger=trigger or infer_trigger(ci),
        commit_hash=commit or ci.get("commitHash"),
        commit_url=ci.get("commitHref"),
        build_url=ci.get("buildHref"),
        pr_title=ci.get("prTitle"),
        pr_url=ci.get("prHref"),
        ci_variables=dict(ci),
        started_at=started_at,
    )
