"""
Edit an existing client.

The flow keeps the stored values under `original` and the pending changes
under `patch`; the field menu always shows the two merged. Text fields take
`!` to keep the current value and `-` to clear it. Saving writes only the
fields that actually changed.
"""
import logging

from bizops.agent import views
from bizops.agent.conversation_state import Flow, Step
from bizops.agent.flows.base import FlowHandler, require
from bizops.agent.replies import Button, Reply
from bizops.agent.tokens import ListKind
from bizops.agent.turn import Turn
from bizops.core.exceptions import MissingArgument, RecordNotFound, ValidationFailed
from bizops.services import records
from bizops.services.validators import KEEP_MARKER, clean_text, is_skip, required_text

logger = logging.getLogger(__name__)

TEXT_FIELDS = {"name": "name", "contact": "contact", "address": "address"}
OPTION_FIELDS = {"category": "category", "city": "route"}
FIELD_LABELS = {
    "name": "Name",
    "contact": "Contact",
    "address": "Address",
    "category": "Category",
    "route": "City/Route",
}


class EditClientFlow(FlowHandler):
    flow = Flow.EDIT_CLIENT

    actions = {
        (None, "field"): "edit_text_field",
        (None, "options"): "edit_option_field",
        (None, "menu"): "field_menu",
        (Step.EDIT_OPTION, "opt"): "pick_option",
        (Step.EDIT_OPTION, "clear"): "clear_option",
        (None, "save"): "save",
    }
    text_steps = {Step.EDIT_TEXT: "got_text"}

    def start(self, turn: Turn, client_id) -> Reply:
        client = records.get_client(turn.db, client_id)
        if not client:
            raise RecordNotFound("❌ Client not found.")
        original = {column: getattr(client, column) for column in FIELD_LABELS}
        turn.session.start(
            Flow.EDIT_CLIENT, Step.EDIT_MENU,
            {"cliente_id": client.id, "cliente_nombre": client.name, "original": original, "patch": {}},
        )
        return self.field_menu(turn)

    @staticmethod
    def _merged(data: dict) -> dict:
        return {**data.get("original", {}), **data.get("patch", {})}

    def field_menu(self, turn: Turn, arg=None) -> Reply:
        turn.session.step = Step.EDIT_MENU
        turn.session.data.pop("field", None)
        merged = self._merged(turn.session.data)
        changed = set(self._changes(turn.session.data))
        lines = [f"✏️ Editing {turn.session.data.get('cliente_nombre')}", ""]
        for column, label in FIELD_LABELS.items():
            mark = " ✳️" if column in changed else ""
            lines.append(f"{label}: {merged.get(column) or '-'}{mark}")
        return Reply(
            text="\n".join(lines),
            actions=[
                [Button("👤 Name", "edit_client:field:name"), Button("📞 Contact", "edit_client:field:contact")],
                [Button("📍 Address", "edit_client:field:address")],
                [Button("🏷️ Category", "edit_client:options:category"), Button("🏙️ City", "edit_client:options:city")],
                [Button("💾 Save", "edit_client:save"), Button("❌ Cancel", "cancel")],
            ],
        )

    def edit_text_field(self, turn: Turn, arg=None) -> Reply:
        field = require(arg)
        if field not in TEXT_FIELDS:
            raise MissingArgument()
        turn.session.data["field"] = TEXT_FIELDS[field]
        turn.session.step = Step.EDIT_TEXT
        current = self._merged(turn.session.data).get(TEXT_FIELDS[field]) or "-"
        hint = "Send ! to keep it." if field == "name" else "Send ! to keep it or - to clear it."
        return Reply(
            text=f"✍️ New {FIELD_LABELS[TEXT_FIELDS[field]].lower()}? Current: {current}\n{hint}",
            actions=[[Button("⬅️ Back", "edit_client:menu")]],
        )

    def edit_option_field(self, turn: Turn, arg=None) -> Reply:
        field = require(arg)
        if field not in OPTION_FIELDS:
            raise MissingArgument()
        turn.session.data["field"] = OPTION_FIELDS[field]
        turn.session.step = Step.EDIT_OPTION
        return views.page(turn, ListKind.EDIT_CLIENT_OPTIONS, field)

    def got_text(self, turn: Turn, text: str) -> Reply:
        column = turn.session.data.get("field")
        if column not in TEXT_FIELDS.values():
            return self.field_menu(turn)
        patch = turn.session.data.setdefault("patch", {})
        if clean_text(text) == KEEP_MARKER:
            patch.pop(column, None)
        elif is_skip(text):
            if column == "name":
                raise ValidationFailed("❌ The name can't be empty. Send a name or ! to keep it.")
            patch[column] = None
        elif column == "name":
            patch[column] = required_text(text, "Name")
        else:
            patch[column] = clean_text(text)[:512]
        return self.field_menu(turn)

    def pick_option(self, turn: Turn, arg=None) -> Reply:
        value = require(arg)
        column = turn.session.data.get("field")
        if column in OPTION_FIELDS.values():
            turn.session.data.setdefault("patch", {})[column] = value
        return self.field_menu(turn)

    def clear_option(self, turn: Turn, arg=None) -> Reply:
        column = turn.session.data.get("field")
        if column in OPTION_FIELDS.values():
            turn.session.data.setdefault("patch", {})[column] = None
        return self.field_menu(turn)

    @staticmethod
    def _changes(data: dict) -> dict:
        original = data.get("original", {})
        return {
            column: value
            for column, value in data.get("patch", {}).items()
            if column in FIELD_LABELS and value != original.get(column)
        }

    def save(self, turn: Turn, arg=None) -> Reply:
        data = turn.session.data
        changes = self._changes(data)
        client_id = data.get("cliente_id")
        if not changes:
            turn.session.end_flow()
            return views.client_card(turn, client_id)
        client = records.update_client(turn.db, client_id, changes)
        if not client:
            raise RecordNotFound("❌ Client not found.")
        logger.info(f"[EditClient] chat_id={turn.chat_id} updated client_id={client.id}: {sorted(changes)}")
        turn.session.end_flow()
        reply = views.client_card(turn, client.id)
        reply.text = f"💾 Changes saved.\n\n{reply.text}"
        return reply
