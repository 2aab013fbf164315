"""Tool handlers exposed by the MCP server.

Each tool is built per caller context: the handler factories close over the
gateway-supplied ToolContext, so no tool parameter can change who is calling.
"""

from . import agent_self, bd_project, specs
from .agent_self import create_agent_self_handler
from .bd_project import create_bd_project_handler
from .services import ToolServices
from .specs import create_specs_handler

# (module, handler factory) per tool, in registration order
TOOL_MODULES = [
    (agent_self, create_agent_self_handler),
    (bd_project, create_bd_project_handler),
    (specs, create_specs_handler),
]

__all__ = [
    "TOOL_MODULES",
    "ToolServices",
    "create_agent_self_handler",
    "create_bd_project_handler",
    "create_specs_handler",
]
