# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for variable, set, condition, prompt-value, dialog and rag-sync nodes
"""

import json

import pytest

from drivehub.core.cancellation import OperationCancelled
from drivehub.workflow.context import DialogResult, ExecutionContext, PromptCallbacks
from drivehub.workflow.exceptions import NodeExecutionError
from drivehub.workflow.handlers.condition import handle_condition_node
from drivehub.workflow.handlers.prompt import handle_dialog_node, handle_prompt_value_node
from drivehub.workflow.handlers.rag_sync import handle_rag_sync_node
from drivehub.workflow.handlers.variable import handle_set_node, handle_variable_node
from drivehub.workflow.models import WorkflowNode
from tests.fakes import FakeRagProvider


def _node(node_type: str, **properties) -> WorkflowNode:
    return WorkflowNode(id="n1", type=node_type, properties=properties)


class TestVariableNodes:
    """variable / set"""

    @pytest.mark.asyncio
    async def test_variable_stores_resolved_value(self, service_context, no_prompts):
        context = ExecutionContext({"who": "Ada"})
        await handle_variable_node(_node("variable", name="greeting", value="hi {{who}}"), context, service_context, no_prompts)
        assert context.variables["greeting"] == "hi Ada"

    @pytest.mark.asyncio
    async def test_variable_requires_name(self, context, service_context, no_prompts):
        with pytest.raises(NodeExecutionError, match="missing 'name'"):
            await handle_variable_node(_node("variable", value="x"), context, service_context, no_prompts)

    @pytest.mark.asyncio
    async def test_variable_does_not_evaluate(self, context, service_context, no_prompts):
        """Only set nodes do arithmetic"""
        await handle_variable_node(_node("variable", name="x", value="1 + 1"), context, service_context, no_prompts)
        assert context.variables["x"] == "1 + 1"

    @pytest.mark.asyncio
    async def test_set_evaluates_arithmetic(self, service_context, no_prompts):
        context = ExecutionContext({"count": "2"})
        await handle_set_node(_node("set", name="count", value="{{count}} + 1"), context, service_context, no_prompts)
        assert context.variables["count"] == "3"

    @pytest.mark.asyncio
    async def test_set_keeps_fractions(self, context, service_context, no_prompts):
        await handle_set_node(_node("set", name="x", value="10 / 4"), context, service_context, no_prompts)
        assert context.variables["x"] == "2.5"

    @pytest.mark.asyncio
    async def test_set_stores_variable_values_literally(self, service_context, no_prompts):
        """Operators inside a variable's value are not arithmetic"""
        context = ExecutionContext({"phone": "555-1234", "day": "2025-1-1", "ratio": "10/2"})
        for target, source in (("p", "phone"), ("d", "day"), ("r", "ratio")):
            await handle_set_node(_node("set", name=target, value="{{" + source + "}}"), context, service_context, no_prompts)

        assert context.variables["p"] == "555-1234"
        assert context.variables["d"] == "2025-1-1"
        assert context.variables["r"] == "10/2"

    @pytest.mark.asyncio
    async def test_set_combines_several_variables(self, service_context, no_prompts):
        context = ExecutionContext({"a": "7", "b-c": "2.5"})
        await handle_set_node(_node("set", name="x", value="({{a}} - {{b-c}}) * 2"), context, service_context, no_prompts)
        assert context.variables["x"] == "9"

    @pytest.mark.asyncio
    async def test_set_non_numeric_operand_kept_literal(self, service_context, no_prompts):
        context = ExecutionContext({"a": "x", "b": "y"})
        await handle_set_node(_node("set", name="x", value="{{a}} + {{b}}"), context, service_context, no_prompts)
        assert context.variables["x"] == "x + y"

    @pytest.mark.asyncio
    async def test_set_division_by_zero_kept_literal(self, context, service_context, no_prompts):
        await handle_set_node(_node("set", name="x", value="1 / 0"), context, service_context, no_prompts)
        assert context.variables["x"] == "1 / 0"

    @pytest.mark.asyncio
    async def test_set_whole_division_has_no_decimal(self, context, service_context, no_prompts):
        await handle_set_node(_node("set", name="x", value="10 / 5"), context, service_context, no_prompts)
        assert context.variables["x"] == "2"

    @pytest.mark.asyncio
    async def test_set_keeps_plain_text(self, context, service_context, no_prompts):
        await handle_set_node(_node("set", name="x", value="hello + world"), context, service_context, no_prompts)
        assert context.variables["x"] == "hello + world"

    @pytest.mark.asyncio
    async def test_set_keeps_signed_number(self, context, service_context, no_prompts):
        """A leading sign is not an operation"""
        await handle_set_node(_node("set", name="n", value="-5"), context, service_context, no_prompts)
        assert context.variables["n"] == "-5"


class TestConditionNode:
    """condition"""

    @pytest.mark.asyncio
    async def test_reports_branch(self, service_context, no_prompts):
        context = ExecutionContext({"score": "80"})
        result = await handle_condition_node(_node("condition", condition="{{score}} >= 50"), context, service_context, no_prompts)
        assert result.branch is True

    @pytest.mark.asyncio
    async def test_invalid_condition(self, context, service_context, no_prompts):
        with pytest.raises(NodeExecutionError, match="Invalid condition"):
            await handle_condition_node(_node("condition", condition="nope >"), context, service_context, no_prompts)


class TestPromptValueNode:
    """prompt-value"""

    @pytest.mark.asyncio
    async def test_stores_answer(self, context, service_context):
        asked = []

        async def prompt_for_value(title, default_value, multiline):
            asked.append((title, default_value, multiline))
            return "typed"

        callbacks = PromptCallbacks(prompt_for_value=prompt_for_value)
        node = _node("prompt-value", title="Your name", default="anon", multiline="true", saveTo="name")

        await handle_prompt_value_node(node, context, service_context, callbacks)

        assert context.variables["name"] == "typed"
        assert asked == [("Your name", "anon", True)]

    @pytest.mark.asyncio
    async def test_dismissed_prompt_fails_node(self, context, service_context):
        async def prompt_for_value(title, default_value, multiline):
            return None

        callbacks = PromptCallbacks(prompt_for_value=prompt_for_value)
        with pytest.raises(NodeExecutionError, match="Input cancelled by user"):
            await handle_prompt_value_node(_node("prompt-value", saveTo="x"), context, service_context, callbacks)

    @pytest.mark.asyncio
    async def test_dismissed_by_stop_is_cancellation(self, context, service_context):
        """A prompt released by a stop request cancels the run"""
        async def prompt_for_value(title, default_value, multiline):
            service_context.cancel_token.cancel("Execution stopped by user")
            return None

        callbacks = PromptCallbacks(prompt_for_value=prompt_for_value)
        with pytest.raises(OperationCancelled):
            await handle_prompt_value_node(_node("prompt-value", saveTo="x"), context, service_context, callbacks)

    @pytest.mark.asyncio
    async def test_no_ui_attached(self, context, service_context, no_prompts):
        with pytest.raises(NodeExecutionError, match="not available"):
            await handle_prompt_value_node(_node("prompt-value", saveTo="x"), context, service_context, no_prompts)


class TestDialogNode:
    """dialog"""

    @pytest.mark.asyncio
    async def test_saves_result_json(self, service_context):
        received = {}

        async def prompt_for_dialog(title, message, options, multi_select, button1, button2):
            received.update(title=title, message=message, options=options, multi=multi_select, b1=button1, b2=button2)
            return DialogResult(button="Go", selected=["red"], input=None)

        context = ExecutionContext({"color": "color"})
        node = _node(
            "dialog",
            title="Pick",
            message="Choose a {{color}}",
            options="red, green ,",
            multiSelect="false",
            button1="Go",
            button2="Stop",
            saveTo="choice",
        )

        await handle_dialog_node(node, context, service_context, PromptCallbacks(prompt_for_dialog=prompt_for_dialog))

        assert received == {
            "title": "Pick",
            "message": "Choose a color",
            "options": ["red", "green"],
            "multi": False,
            "b1": "Go",
            "b2": "Stop",
        }
        assert json.loads(context.variables["choice"]) == {"button": "Go", "selected": ["red"], "input": None}

    @pytest.mark.asyncio
    async def test_dismissed_dialog(self, context, service_context):
        async def prompt_for_dialog(*args):
            return None

        with pytest.raises(NodeExecutionError, match="Dialog cancelled by user"):
            await handle_dialog_node(_node("dialog"), context, service_context, PromptCallbacks(prompt_for_dialog=prompt_for_dialog))


class TestRagSyncNode:
    """rag-sync"""

    @pytest.mark.asyncio
    async def test_uploads_file_and_reports_store(self, file_store, service_context, no_prompts):
        await file_store.create("notes.md", "# Notes", file_store.root_folder_id, "text/markdown")
        rag = FakeRagProvider()
        service_context.rag = rag
        service_context.gemini_api_key = "key"
        context = ExecutionContext()

        result = await handle_rag_sync_node(
            _node("rag-sync", path="notes", ragSetting="team", saveTo="sync"),
            context,
            service_context,
            no_prompts,
        )

        assert result.discovered_rag_stores == {"team": "fileSearchStores/team"}
        assert rag.uploads == [("fileSearchStores/team", "notes.md", b"# Notes")]
        saved = json.loads(context.variables["sync"])
        assert saved["fileId"] == "doc-1"
        assert saved["mode"] == "upload"
        assert saved["ragSetting"] == "team"

    @pytest.mark.asyncio
    async def test_requires_api_key(self, context, service_context, no_prompts):
        service_context.rag = FakeRagProvider()
        with pytest.raises(NodeExecutionError, match="API key"):
            await handle_rag_sync_node(_node("rag-sync", path="a.md", ragSetting="s"), context, service_context, no_prompts)

    @pytest.mark.asyncio
    async def test_missing_file(self, context, service_context, no_prompts):
        service_context.rag = FakeRagProvider()
        service_context.gemini_api_key = "key"
        with pytest.raises(NodeExecutionError, match="File not found"):
            await handle_rag_sync_node(_node("rag-sync", path="ghost.md", ragSetting="s"), context, service_context, no_prompts)
