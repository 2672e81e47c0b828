# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Node handlers, one per node type.
"""

from typing import Dict

from drivehub.workflow.handlers.base import NodeHandler
from drivehub.workflow.handlers.command import handle_command_node
from drivehub.workflow.handlers.condition import handle_condition_node
from drivehub.workflow.handlers.drive import handle_drive_file_node, handle_drive_read_node
from drivehub.workflow.handlers.drive_save import handle_drive_save_node
from drivehub.workflow.handlers.mcp import handle_mcp_node
from drivehub.workflow.handlers.prompt import handle_dialog_node, handle_prompt_value_node
from drivehub.workflow.handlers.rag_sync import handle_rag_sync_node
from drivehub.workflow.handlers.variable import handle_set_node, handle_variable_node
from drivehub.workflow.models import NodeType

HANDLERS: Dict[NodeType, NodeHandler] = {
    NodeType.VARIABLE: handle_variable_node,
    NodeType.SET: handle_set_node,
    NodeType.CONDITION: handle_condition_node,
    NodeType.COMMAND: handle_command_node,
    NodeType.DRIVE_FILE: handle_drive_file_node,
    NodeType.DRIVE_READ: handle_drive_read_node,
    NodeType.DRIVE_SAVE: handle_drive_save_node,
    NodeType.MCP: handle_mcp_node,
    NodeType.RAG_SYNC: handle_rag_sync_node,
    NodeType.PROMPT_VALUE: handle_prompt_value_node,
    NodeType.DIALOG: handle_dialog_node,
}


def get_handler(node_type: NodeType) -> NodeHandler:
    return HANDLERS[node_type]


__all__ = ["HANDLERS", "NodeHandler", "get_handler"]
