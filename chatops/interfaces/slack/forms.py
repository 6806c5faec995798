# chatops/interfaces/slack/forms.py
"""Interactive forms collecting missing command fields.

A form is posted when a command declares more fields than the parameters
resolved from the message text. Its whole session lives in the message:
the submit and cancel buttons carry an encoded ButtonValue with the
original message timestamp and text, so any process can resume the
command when a button is clicked.

Life cycle:
    NO_FORM_NEEDED  parameters are complete, execute directly
    ISSUED          form posted, `dialog` reaction on the original message
    SUBMITTED       field values collected, command executes
    CANCELLED       form dismissed, `failed` reaction added
"""

import base64
import binascii
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_pascal

from chatops.core.commands.models import ExecuteParams, Field, FieldType
from chatops.core.commands.parser import MessageInfo
from chatops.core.commands.registry import CommandEntry, get_interaction_id
from chatops.core.errors import TokenDecodeError, TransportError
from chatops.interfaces.slack.progress import ProgressReactor
from chatops.interfaces.slack.slack_api import SlackTransport

logger = logging.getLogger(__name__)

SUBMIT_ACTION = "submit"
CANCEL_ACTION = "cancel"

__all__ = [
    "CANCEL_ACTION",
    "SUBMIT_ACTION",
    "ButtonValue",
    "FormManager",
    "FormOutcome",
    "FormState",
    "build_field_element",
    "build_form_blocks",
    "decode_button_value",
    "encode_button_value",
    "extract_field_values",
    "get_interaction_id",
    "needs_form",
]


class FormState(str, Enum):
    NO_FORM_NEEDED = "no_form_needed"
    ISSUED = "issued"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"


class ButtonValue(BaseModel):
    """Resumable token carried by the form buttons.

    Serialized with the `Timestamp` and `Text` keys; lowercase keys are
    accepted when decoding.

    Attributes:
        timestamp: Timestamp of the original message.
        text: Text of the original message.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", alias_generator=to_pascal, populate_by_name=True
    )

    timestamp: str
    text: str


def encode_button_value(value: ButtonValue) -> str:
    """Encode a token as base64 JSON."""
    return base64.b64encode(value.model_dump_json(by_alias=True).encode("utf-8")).decode("ascii")


def decode_button_value(raw: str) -> ButtonValue:
    """Decode a token produced by encode_button_value().

    Args:
        raw: Button value from the interaction payload.

    Returns:
        The decoded token.

    Raises:
        TokenDecodeError: If the value is not valid base64 JSON of a token.
    """
    if not isinstance(raw, str) or not raw:
        raise TokenDecodeError("Empty button value")
    try:
        data = base64.b64decode(raw, validate=True)
        return ButtonValue.model_validate_json(data.decode("utf-8"))
    except (binascii.Error, ValueError, ValidationError) as e:
        raise TokenDecodeError(f"Invalid button value: {e}") from e


def needs_form(fields: list[Field], params: ExecuteParams) -> bool:
    """Check whether a form must be shown.

    The form covers all fields as soon as fewer parameters than fields were
    resolved.
    """
    return len(fields) > len(params)


def _plain_text(text: str) -> dict:
    return {"type": "plain_text", "text": text}


def _option(value: str) -> dict:
    return {"text": _plain_text(value), "value": value}


def build_field_element(
    form_field: Field, action_id: str, default: str, today: date | None = None
) -> dict:
    """Build the input element for a field.

    Args:
        form_field: Field to render.
        action_id: Action ID of the element.
        default: Initial value.
        today: Initial date for date fields (defaults to the current date).

    Returns:
        Block Kit element.
    """
    element: dict[str, Any]

    if form_field.type == FieldType.DATE:
        today = today or date.today()
        element = {
            "type": "datepicker",
            "action_id": action_id,
            "initial_date": today.isoformat(),
        }
    elif form_field.type == FieldType.SELECT:
        options = [_option(v) for v in form_field.values]
        element = {
            "type": "static_select",
            "action_id": action_id,
            "options": options,
        }
        initial = [o for o in options if o["value"] == default]
        if initial:
            element["initial_option"] = initial[0]
    elif form_field.type == FieldType.MULTI_SELECT:
        selected = {v.strip() for v in default.split(",") if v.strip()}
        options = [_option(v) for v in form_field.values]
        element = {
            "type": "multi_static_select",
            "action_id": action_id,
            "options": options,
        }
        initial = [o for o in options if o["value"] in selected]
        if initial:
            element["initial_options"] = initial
    else:
        if form_field.type == FieldType.URL:
            element = {"type": "url_text_input", "action_id": action_id}
        else:
            element = {"type": "plain_text_input", "action_id": action_id}
            if form_field.type == FieldType.MULTI_EDIT:
                element["multiline"] = True
        if default:
            element["initial_value"] = default

    if form_field.hint:
        element["placeholder"] = _plain_text(form_field.hint)
    return element


def build_form_blocks(
    interaction_id: str,
    fields: list[Field],
    params: ExecuteParams,
    value: ButtonValue,
    today: date | None = None,
) -> list[dict]:
    """Build the blocks of a form.

    Args:
        interaction_id: Interaction ID of the command.
        fields: Fields to collect.
        params: Parameters already resolved, used as initial values.
        value: Token attached to the buttons.
        today: Initial date for date fields.

    Returns:
        One input block per field followed by the submit/cancel actions
        block, or an empty list when there are no fields.
    """
    blocks: list[dict] = []
    for f in fields:
        action_id = f"{interaction_id}-{f.name}"
        default = params.get(f.name) or f.default
        blocks.append(
            {
                "type": "input",
                "label": _plain_text(f.label or f.name),
                "element": build_field_element(f, action_id, default, today),
            }
        )

    if not blocks:
        return blocks

    encoded = encode_button_value(value)
    blocks.append(
        {
            "type": "actions",
            "block_id": interaction_id,
            "elements": [
                {
                    "type": "button",
                    "action_id": SUBMIT_ACTION,
                    "text": _plain_text("Submit"),
                    "value": encoded,
                    "style": "primary",
                },
                {
                    "type": "button",
                    "action_id": CANCEL_ACTION,
                    "text": _plain_text("Cancel"),
                    "value": encoded,
                },
            ],
        }
    )
    return blocks


def _state_value(state: dict) -> str:
    kind = state.get("type")
    if kind == "datepicker":
        return state.get("selected_date") or ""
    if kind == "static_select":
        return (state.get("selected_option") or {}).get("value") or ""
    if kind == "multi_static_select":
        options = state.get("selected_options") or []
        return ",".join(o.get("value", "") for o in options)
    return state.get("value") or ""


def extract_field_values(interaction_id: str, state_values: Any) -> ExecuteParams:
    """Read submitted field values from an interaction state.

    Args:
        interaction_id: Interaction ID of the command.
        state_values: `state.values` of the block_actions payload.

    Returns:
        Field values keyed by field name.
    """
    params: ExecuteParams = {}
    if not isinstance(state_values, dict):
        return params

    prefix = f"{interaction_id}-"
    for block in state_values.values():
        if not isinstance(block, dict):
            continue
        for action_id, state in block.items():
            if not isinstance(state, dict):
                continue
            params[action_id.removeprefix(prefix)] = _state_value(state)
    return params


@dataclass(frozen=True)
class FormOutcome:
    """Result of a form callback.

    Attributes:
        state: SUBMITTED or CANCELLED.
        interaction_id: Interaction ID the callback belongs to.
        message: The original message, restored from the token.
        params: Submitted field values.
        profile: Profile of the user who answered, empty if unavailable.
    """

    state: FormState
    interaction_id: str
    message: MessageInfo
    params: ExecuteParams = field(default_factory=dict)
    profile: dict[str, Any] = field(default_factory=dict)


class FormManager:
    """Issues forms and resumes commands from form callbacks."""

    def __init__(self, dialog_reaction: str, failed_reaction: str) -> None:
        self.dialog_reaction = dialog_reaction
        self.failed_reaction = failed_reaction

    async def issue(
        self,
        entry: CommandEntry,
        params: ExecuteParams,
        message: MessageInfo,
        transport: SlackTransport,
        reactor: ProgressReactor,
        today: date | None = None,
    ) -> FormState:
        """Post a form for the command's fields to the invoking user.

        Returns:
            ISSUED when a form was posted, NO_FORM_NEEDED when the command
            has no fields to render.

        Raises:
            TransportError: If the form could not be posted; the dialog
                reaction is removed again first.
        """
        value = ButtonValue(timestamp=message.timestamp, text=message.text)
        blocks = build_form_blocks(
            entry.interaction_id, list(entry.command.fields), params, value, today
        )
        if not blocks:
            return FormState.NO_FORM_NEEDED

        await reactor.add(message, self.dialog_reaction)
        try:
            await transport.post_message(
                message.channel_id,
                text=f"{entry.name}: please fill in the fields",
                blocks=blocks,
                thread_ts=message.thread_timestamp,
                ephemeral_user=message.user_id,
            )
        except TransportError:
            await reactor.remove(message, self.dialog_reaction)
            raise
        logger.debug(
            "Form %s issued for %s",
            entry.interaction_id,
            message.user_id,
            extra={"interaction_id": entry.interaction_id, "user_id": message.user_id},
        )
        return FormState.ISSUED

    async def resume(
        self, body: dict[str, Any], transport: SlackTransport, reactor: ProgressReactor
    ) -> FormOutcome | None:
        """Handle a submit or cancel click.

        The form message is hidden and the dialog reaction removed in both
        cases. Cancel and unknown actions add the failed reaction.

        Args:
            body: block_actions payload.
            transport: Slack transport.
            reactor: Reactor bound to the same transport.

        Returns:
            The outcome, or None when the payload carries no action or an
            invalid token.
        """
        container = body.get("container") or {}
        message = MessageInfo(
            type=container.get("type", ""),
            user_id=(body.get("user") or {}).get("id", ""),
            channel_id=container.get("channel_id")
            or (body.get("channel") or {}).get("id", ""),
            thread_timestamp=container.get("thread_ts") or "",
        )

        actions = body.get("actions") or []
        if not actions or not isinstance(actions[0], dict):
            logger.error("Slack actions are not defined")
            await reactor.remove(message, self.dialog_reaction)
            return None
        action = actions[0]

        try:
            value = decode_button_value(action.get("value", ""))
        except TokenDecodeError as e:
            logger.warning("Ignoring form callback: %s", e)
            await reactor.remove(message, self.dialog_reaction)
            return None

        message = replace(message, timestamp=value.timestamp, text=value.text)
        interaction_id = action.get("block_id", "")

        response_url = body.get("response_url")
        if response_url:
            try:
                await transport.hide_message(response_url)
            except TransportError as e:
                logger.error("Slack hiding form error: %s", e)
        await reactor.remove(message, self.dialog_reaction)

        if action.get("action_id") != SUBMIT_ACTION:
            await reactor.add(message, self.failed_reaction)
            return FormOutcome(FormState.CANCELLED, interaction_id, message)

        profile: dict[str, Any] = {}
        try:
            profile = await transport.get_user_profile(message.user_id)
        except TransportError as e:
            logger.error("Slack couldn't get user profile for %s: %s", message.user_id, e)

        params = extract_field_values(
            interaction_id, (body.get("state") or {}).get("values")
        )
        return FormOutcome(FormState.SUBMITTED, interaction_id, message, params, profile)
