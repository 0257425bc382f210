"""Side-effecting handlers for each automation action step type.

Invariants:
- Handlers raise on failure; the executor logs and moves on to the next step.
- Cell writes go through `cell_service.write_cell` so status changes made here
  are captured as new events for later cycles.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boardflow.core.config import AutomationConfig
from boardflow.models.board import CellValue, Item
from boardflow.services import outbound
from boardflow.services.automation_log_service import LOG_SUCCESS, record_log
from boardflow.services.automation_types import ChangeEvent, RuleDefinition
from boardflow.services.cell_service import write_cell
from boardflow.services.outbound import ExternalAPIError, response_error_message
from boardflow.services.status_values import cell_display_text
from boardflow.services.template_resolver import (
    ItemContext,
    build_replacements,
    linkify_urls,
    load_item_context,
    replacements_for_context,
    strip_tags,
    substitute,
    substitute_deep,
)

logger = logging.getLogger("boardflow.services.automation_actions")

# Moved items land at the end of the destination board until the UI resequences them.
MOVED_ITEM_POSITION = 999999

_RECIPIENT_SPLIT_RE = re.compile(r"[\s,]+")
_SUBJECT_LINE_RE = re.compile(r"Subject:\s*(.+?)(?:\n\n|\n$)", re.IGNORECASE)
_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
_BARE_JSON_RE = re.compile(r"(\{[\s\S]*\})")
_LEADING_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_MONEY_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")
_TRUTHY_CHECKBOX = {"true", "yes", "1"}


class AutomationExecutionError(RuntimeError):
    """Raised for configuration or data problems that fail a single step."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(slots=True)
class ActionContext:
    session: AsyncSession
    rule: RuleDefinition
    event: ChangeEvent
    config: AutomationConfig


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _coerce_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "y"}:
            return True
        if lowered in {"false", "0", "no", "n"}:
            return False
    return bool(value)


def _as_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    text = _coerce_str(value)
    if not text:
        return None
    try:
        return uuid.UUID(text)
    except ValueError:
        return None


def _require_uuid(config: dict[str, Any], key: str) -> uuid.UUID:
    value = _as_uuid(config.get(key))
    if value is None:
        raise AutomationExecutionError(f"{key} missing or invalid")
    return value


async def _require_context(ctx: ActionContext) -> ItemContext:
    context = await load_item_context(ctx.session, item_id=ctx.event.item_id, board_id=ctx.event.board_id)
    if context is None:
        raise AutomationExecutionError(f"Item {ctx.event.item_id} not found")
    return context


async def move_to_board(ctx: ActionContext, config: dict[str, Any]) -> None:
    """Copy the item and its cells onto another board, then archive or delete the source."""
    session = ctx.session
    dest_board_id = _require_uuid(config, "dest_board_id")
    item = await session.get(Item, ctx.event.item_id)
    if not item:
        raise AutomationExecutionError(f"Item {ctx.event.item_id} not found")
    cell_rows = await session.scalars(select(CellValue).where(CellValue.item_id == item.id))
    cells = [(cell.column_id, cell.value) for cell in cell_rows]

    moved = Item(board_id=dest_board_id, name=item.name, position=MOVED_ITEM_POSITION)
    session.add(moved)
    await session.flush()
    for column_id, value in cells:
        await write_cell(session, item_id=moved.id, column_id=column_id, value=value)

    new_status = _coerce_str(config.get("new_status"))
    status_column_id = _as_uuid(config.get("status_column_id"))
    if new_status and status_column_id:
        await write_cell(session, item_id=moved.id, column_id=status_column_id, value=new_status)

    if _coerce_bool(config.get("archive_source"), default=True):
        item.archived_at = _utcnow()
    else:
        await session.execute(delete(CellValue).where(CellValue.item_id == item.id))
        await session.delete(item)
    await session.commit()
    logger.info("Moved item %s to board %s as %s", ctx.event.item_id, dest_board_id, moved.id)


async def move_to_group(ctx: ActionContext, config: dict[str, Any]) -> None:
    """Append the item to the end of another group; source gaps are left alone."""
    session = ctx.session
    dest_group_id = _require_uuid(config, "dest_group_id")
    max_position = await session.scalar(select(func.max(Item.position)).where(Item.group_id == dest_group_id))
    next_position = max_position + 1 if max_position is not None else 0
    result = await session.execute(
        update(Item)
        .where(Item.id == ctx.event.item_id)
        .values(group_id=dest_group_id, position=next_position)
    )
    if not result.rowcount:
        raise AutomationExecutionError(f"Failed to move item: item {ctx.event.item_id} not found")
    await session.commit()


async def change_status(ctx: ActionContext, config: dict[str, Any]) -> None:
    """Set a status cell; an empty value clears it to null."""
    column_id = _require_uuid(config, "status_column_id")
    value = config.get("status_value") or None
    await write_cell(ctx.session, item_id=ctx.event.item_id, column_id=column_id, value=value)
    await ctx.session.commit()


async def call_webhook(ctx: ActionContext, config: dict[str, Any]) -> None:
    """POST the change envelope, with placeholders resolved, to the configured URL."""
    url = _coerce_str(config.get("url"))
    if not url:
        raise AutomationExecutionError("Webhook URL missing")
    event = ctx.event
    envelope = {
        "automation_id": str(ctx.rule.id),
        "board_id": str(event.board_id),
        "item_id": str(event.item_id),
        "column_id": str(event.column_id),
        "old_value": event.old_value,
        "new_value": event.new_value,
        "payload": config.get("payload"),
    }
    replacements = await build_replacements(
        ctx.session, item_id=event.item_id, board_id=event.board_id, status_column_id=event.column_id
    )
    response = await outbound.post_json(
        url, substitute_deep(envelope, replacements), timeout=ctx.config.http_timeout_seconds
    )
    if not response.is_success:
        raise ExternalAPIError(f"Webhook {response.status_code}", status_code=response.status_code)
    await record_log(
        ctx.session, automation_id=ctx.rule.id, status=LOG_SUCCESS, message=f"Webhook {response.status_code}"
    )


def _split_recipients(field: Any, replacements: dict[str, str]) -> list[str]:
    text = _coerce_str(field)
    if not text:
        return []
    resolved = substitute(text, replacements)
    return [address for address in _RECIPIENT_SPLIT_RE.split(resolved) if address.strip()]


def _fallback_recipient(context: ItemContext) -> list[str]:
    """First non-empty value of a column whose name mentions email."""
    for column in context.columns.values():
        if "email" not in column.name.lower() or column.id not in context.cells:
            continue
        address = cell_display_text(context.cells[column.id]).strip()
        if address:
            return [address]
    return []


def _split_subject_line(template: str) -> tuple[str | None, str]:
    """Pull a leading `Subject:` line out of a template body."""
    match = _SUBJECT_LINE_RE.match(template)
    if not match:
        return None, template
    return match.group(1).strip(), template[match.end():].strip()


async def send_email(ctx: ActionContext, config: dict[str, Any]) -> None:
    """Render the email template for the item and hand it to the email relay."""
    session = ctx.session
    context = await _require_context(ctx)
    replacements = replacements_for_context(context, status_column_id=ctx.event.column_id)

    if _coerce_str(config.get("to")):
        recipients = _split_recipients(config.get("to"), replacements)
    else:
        recipients = _fallback_recipient(context)
    if not recipients:
        raise AutomationExecutionError("No email address found")
    cc = _split_recipients(config.get("cc"), replacements)
    bcc = _split_recipients(config.get("bcc"), replacements)

    body = substitute(str(config.get("email_template") or ""), replacements)
    subject_template = _coerce_str(config.get("subject"))
    if subject_template:
        subject: str | None = substitute(subject_template, replacements)
    else:
        subject, body = _split_subject_line(body)
    subject = (subject or "").strip() or ctx.config.email_default_subject
    sender_template = _coerce_str(config.get("from"))
    sender = substitute(sender_template, replacements).strip() if sender_template else ""
    html = linkify_urls(body)

    relay_url = ctx.config.email_relay_url
    if not relay_url:
        raise AutomationExecutionError("Email relay URL not configured")
    payload: dict[str, Any] = {
        "from": sender or ctx.config.email_default_from,
        "to": recipients,
        "subject": subject,
        "html": html,
        "text": strip_tags(html),
    }
    if cc:
        payload["cc"] = cc
    if bcc:
        payload["bcc"] = bcc

    response = await outbound.post_json(relay_url, payload, timeout=ctx.config.http_timeout_seconds)
    if not response.is_success:
        raise ExternalAPIError(
            f"Email webhook failed: {response_error_message(response)}", status_code=response.status_code
        )
    await record_log(
        session, automation_id=ctx.rule.id, status=LOG_SUCCESS, message=f"Email sent to {', '.join(recipients)}"
    )

    after_status = _coerce_str(config.get("after_status"))
    after_column_id = _as_uuid(config.get("after_status_column_id"))
    if after_status and after_column_id:
        await write_cell(session, item_id=ctx.event.item_id, column_id=after_column_id, value=after_status)
        await session.commit()
        await record_log(
            session, automation_id=ctx.rule.id, status=LOG_SUCCESS, message=f"Status updated to {after_status}"
        )


def build_fill_prompt(context: ItemContext, instructions: str, mappings: list[dict[str, Any]]) -> str:
    field_lines = []
    for mapping in mappings:
        column = context.columns.get(_as_uuid(mapping.get("column_id")))
        if column:
            field_lines.append(f"- {column.name} ({column.type}): {mapping.get('instruction') or ''}")
    fields = json.dumps(context.field_values(), indent=2)
    return (
        "You are an AI assistant helping to fill fields in a task management board.\n\n"
        "ITEM CONTEXT:\n"
        f"- Task Name: {context.item_name}\n"
        f"- Board: {context.board_name}\n"
        f"- Current Fields: {fields}\n\n"
        "INSTRUCTIONS:\n"
        f"{instructions}\n\n"
        "FIELDS TO FILL:\n"
        + "\n".join(field_lines)
        + "\n\nPlease respond with ONLY a JSON object where keys are field names and values are the "
        "content to put in each field. Do not include any markdown formatting or explanation, just the raw JSON.\n\n"
        "Example response format:\n"
        '{"field1": "value1", "field2": "value2"}'
    )


def parse_completion_json(content: str) -> dict[str, Any]:
    """Parse the model's JSON object, tolerating a markdown code fence."""
    match = _FENCED_JSON_RE.search(content) or _BARE_JSON_RE.search(content)
    candidate = match.group(1) if match else content
    try:
        parsed = json.loads(candidate.strip())
    except json.JSONDecodeError as exc:
        raise ExternalAPIError(f"Failed to parse AI response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ExternalAPIError("Failed to parse AI response: expected a JSON object")
    return parsed


def coerce_field_value(column_type: str, value: Any) -> Any:
    """Convert a model-provided value into the storage shape for a column type."""
    if column_type == "number":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        match = _LEADING_FLOAT_RE.match(str(value))
        return float(match.group(1)) if match else value
    if column_type == "checkbox":
        return value is True or (isinstance(value, str) and value in _TRUTHY_CHECKBOX)
    if column_type == "money":
        match = _MONEY_RE.search(str(value))
        return float(match.group(0).replace(",", "")) if match else 0
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return cell_display_text(value)


def _completion_text(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return "{}"
    return content or "{}"


async def ai_fill_fields(ctx: ActionContext, config: dict[str, Any]) -> None:
    """Ask the completion model for field values and write the mapped ones back."""
    session = ctx.session
    options = ctx.config
    if not options.ai_api_key:
        raise AutomationExecutionError("AI API key not configured")
    mappings = [entry for entry in config.get("field_mappings") or [] if isinstance(entry, dict)]
    context = await _require_context(ctx)
    prompt = build_fill_prompt(context, str(config.get("ai_instructions") or ""), mappings)

    headers = {"Authorization": f"Bearer {options.ai_api_key}"}
    if options.ai_referer:
        headers["HTTP-Referer"] = options.ai_referer
    response = await outbound.post_json(
        f"{options.ai_base_url.rstrip('/')}/chat/completions",
        {"model": options.ai_model, "messages": [{"role": "user", "content": prompt}]},
        headers=headers,
        timeout=options.http_timeout_seconds,
    )
    if not response.is_success:
        raise ExternalAPIError(f"AI provider error: {response.text}", status_code=response.status_code)
    try:
        data = response.json()
    except ValueError as exc:
        raise ExternalAPIError(f"Failed to parse AI response: {exc}") from exc
    values = parse_completion_json(_completion_text(data))

    updated = 0
    for mapping in mappings:
        column = context.columns.get(_as_uuid(mapping.get("column_id")))
        if not column or column.name not in values:
            continue
        value = coerce_field_value(column.type, values[column.name])
        await write_cell(session, item_id=context.item_id, column_id=column.id, value=value)
        updated += 1
    await session.commit()
    await record_log(
        session,
        automation_id=ctx.rule.id,
        status=LOG_SUCCESS,
        message=f"AI filled fields (updated {updated} of {len(mappings)} fields)",
    )


async def notify(ctx: ActionContext, config: dict[str, Any]) -> None:
    """Reserved step type without a delivery channel yet."""
    logger.info("NOTIFY step on rule %s skipped: no notification channel configured", ctx.rule.id)
