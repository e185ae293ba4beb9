from __future__ import annotations

from talos.history import project_history
from talos.models import ChatMessage, Role


def test_empty_history_projects_to_empty() -> None:
    assert project_history([]) == []


def test_projection_keeps_order_and_only_role_and_content(store) -> None:
    conv_id = store.create_conversation("T", "m")
    store.add_message(conv_id, "system", "be brief")
    store.add_message(conv_id, "user", "hello")
    store.add_message(conv_id, "assistant", "hi")

    projected = project_history(store.get_messages(conv_id))

    assert projected == [
        ChatMessage(role=Role.SYSTEM, content="be brief"),
        ChatMessage(role=Role.USER, content="hello"),
        ChatMessage(role=Role.ASSISTANT, content="hi"),
    ]
    assert projected[0].model_dump(mode="json") == {"role": "system", "content": "be brief"}
