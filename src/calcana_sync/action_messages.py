"""User-facing copy builders for confirmations and notices."""

from __future__ import annotations


def _ensure_sentence(text: str) -> str:
    """Return text with terminal sentence punctuation."""
    cleaned = text.strip()
    if not cleaned:
        return ""
    if cleaned.endswith((".", "!", "?")):
        return cleaned
    return f"{cleaned}."


def build_actionable_error(
    action: str,
    *,
    next_step: str,
    why: str | None = None,
) -> str:
    """Build a 2-3 line actionable error message."""
    lines = [f"Could not {action.strip()}."]
    if why:
        lines.append(f"Why: {_ensure_sentence(why)}")
    lines.append(build_next_step_hint(next_step))
    return "\n".join(lines)


def build_next_step_hint(next_step: str) -> str:
    """Build a canonical next-step guidance line."""
    return f"Next step: {_ensure_sentence(next_step)}"


def build_actionable_warning(
    message: str,
    *,
    next_step: str,
    why: str | None = None,
) -> str:
    """Build a 2-3 line actionable warning message."""
    lines = [_ensure_sentence(message)]
    if why:
        lines.append(f"Why: {_ensure_sentence(why)}")
    lines.append(build_next_step_hint(next_step))
    return "\n".join(lines)


def _plural(count: int, noun: str, plural: str | None = None) -> str:
    if count == 1:
        return f"1 {noun}"
    return f"{count} {plural or noun + 's'}"


def build_results_found_notification(count: int, noun: str, plural: str | None = None) -> str:
    """Build the notice shown after an explicit "Filter" request."""
    return f"{_plural(count, noun, plural)} found."


def build_empty_list_message(noun_plural: str, *, search: str, status: str | None) -> str:
    """Explain an empty page using only the filter state the screen holds."""
    if search:
        return f'No {noun_plural} found for "{search}".'
    if status:
        return f'No {noun_plural} found for "{status}".'
    return f"No {noun_plural} found."


def build_status_change_confirmation_prompt(kind: str, noun: str, label: str) -> str:
    """Build the confirmation prompt for deactivating or reactivating a record."""
    verb = "DEACTIVATE" if kind == "delete" else "REACTIVATE"
    return f'Are you sure you want to {verb} the {noun} "{label}"?'


def build_city_delete_confirmation_prompt(label: str) -> str:
    return f'Delete the city "{label}"?\nThis cannot be undone.'


def build_send_report_confirmation_prompt(sample_number: int, supplier_name: str) -> str:
    """Build the confirmation prompt for emailing an analysis report."""
    recipient = supplier_name or "the supplier"
    return f"Email the report for sample #{sample_number} to {recipient}?"


__all__ = [
    "build_actionable_error",
    "build_actionable_warning",
    "build_city_delete_confirmation_prompt",
    "build_empty_list_message",
    "build_next_step_hint",
    "build_results_found_notification",
    "build_send_report_confirmation_prompt",
    "build_status_change_confirmation_prompt",
]
