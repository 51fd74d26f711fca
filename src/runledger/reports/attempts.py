"""Per-attempt extraction shared by both report formats."""

from __future__ import annotations

from typing import Any

from runledger.core.models import Attachment, TestAttempt

IMAGE_CONTENT_PREFIX = "image/"
DEFAULT_ATTACHMENT_NAME = "Attachment"
DEFAULT_ATTACHMENT_TYPE = "text/plain"


def _error_text(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message", ""))
    return str(error)


def extract_errors(result: dict[str, Any]) -> tuple[str | None, str | None]:
    """Return the short and full error of a raw result.

    The short error is the first entry of the ``errors`` list; the full error
    joins all of them with blank lines. No list means no error.
    """
    errors = result.get("errors")
    if not errors:
        return None, None
    messages = [_error_text(e) for e in errors]
    return messages[0], "\n\n".join(messages)


def extract_screenshot_paths(attachments: list[dict[str, Any]] | None) -> list[str]:
    """Return archive paths of image attachments, in order."""
    return [
        a["path"]
        for a in attachments or []
        if (a.get("contentType") or "").startswith(IMAGE_CONTENT_PREFIX) and a.get("path")
    ]


def partition_attachments(
    attachments: list[dict[str, Any]] | None,
) -> tuple[list[str], list[Attachment]]:
    """Split raw attachments into screenshot paths and inline textual attachments.

    Image attachments without a path and non-image attachments without an
    inline body are dropped.
    """
    screenshots: list[str] = []
    inline: list[Attachment] = []
    for attachment in attachments or []:
        content_type = attachment.get("contentType") or ""
        is_image = content_type.startswith(IMAGE_CONTENT_PREFIX)
        if is_image and attachment.get("path"):
            screenshots.append(attachment["path"])
        elif attachment.get("body") and not is_image:
            inline.append(
                Attachment(
                    name=attachment.get("name") or DEFAULT_ATTACHMENT_NAME,
                    content_type=content_type or DEFAULT_ATTACHMENT_TYPE,
                    content=attachment["body"],
                )
            )
    return screenshots, inline


def build_attempt(result: dict[str, Any], index: int) -> TestAttempt:
    """Build a TestAttempt from one raw Playwright result.

    Args:
        result: Raw result dict (status, duration, errors, attachments, steps...).
        index: Position of the result in the test's result list.
    """
    error, error_stack = extract_errors(result)
    screenshots, attachments = partition_attachments(result.get("attachments"))
    steps = result.get("steps")

    return TestAttempt(
        retry_index=index,
        status=result.get("status", ""),
        duration_ms=result_duration(result),
        error=error,
        error_stack=error_stack,
        screenshots=screenshots,
        attachments=attachments,
        start_time=result.get("startTime"),
        steps=list(steps) if isinstance(steps, list) else [],
    )


def result_duration(result: dict[str, Any]) -> int:
    """Duration of a raw result in ms, defaulting to 0 and never negative."""
    duration = result.get("duration") or 0
    return max(int(duration), 0)


def extract_tags(annotations: list[dict[str, Any]] | None) -> list[str]:
    """Return descriptions of ``tag`` annotations."""
    return [
        a["description"]
        for a in annotations or []
        if a.get("type") == "tag" and a.get("description")
    ]


def find_last_failed_step(steps: list[dict[str, Any]] | None) -> dict[str, Any] | None:
    """Find the last step that carries an error.

    Steps are searched from last to first; nested steps are searched before
    their parent, so the innermost failing step wins.

    Returns:
        ``{"title", "duration", "error"}`` or None when no step failed.
    """
    for step in reversed(steps or []):
        nested = step.get("steps")
        if isinstance(nested, list):
            found = find_last_failed_step(nested)
            if found:
                return found

        error = step.get("error")
        if error:
            if isinstance(error, dict):
                error = error.get("message") or str(error)
            return {
                "title": str(step.get("title") or "Unknown step"),
                "duration": step.get("duration") or 0,
                "error": str(error),
            }
    return None
