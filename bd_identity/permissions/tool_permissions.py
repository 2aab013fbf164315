"""Command-to-permission mappings.

Defines which permissions are required to run each tool command. Commands
are keyed as ``<tool>.<command>``. Handlers check these mappings before they
touch the store.
"""

from __future__ import annotations

from .permissions import Permission

# A command can be executed if the caller has ALL required permissions
COMMAND_PERMISSIONS: dict[str, set[Permission]] = {
    # =========================================================================
    # agent_self - own identity bead
    # =========================================================================
    "agent_self.whoami": {Permission.READ},
    "agent_self.show": {Permission.READ},
    "agent_self.comments": {Permission.READ},
    "agent_self.comment": {Permission.WRITE},
    "agent_self.edit": {Permission.WRITE},
    "agent_self.init": {Permission.WRITE},

    # =========================================================================
    # agent_self - personality, long-term and daily memory
    # =========================================================================
    "agent_self.soul_read": {Permission.READ},
    "agent_self.soul_write": {Permission.WRITE},
    "agent_self.ltm_read": {Permission.READ},
    "agent_self.ltm_write": {Permission.WRITE},
    "agent_self.shared_read": {Permission.READ},
    "agent_self.shared_write": {Permission.WRITE, Permission.COORDINATE},
    "agent_self.memory_write": {Permission.WRITE},
    "agent_self.memory_load": {Permission.READ},
    "agent_self.memory_read": {Permission.READ},
    "agent_self.memory_search": {Permission.READ},
    "agent_self.memory_search_all": {Permission.READ},

    # =========================================================================
    # agent_self - topics (own working memory beads)
    # =========================================================================
    "agent_self.topic_create": {Permission.WRITE},
    "agent_self.topic_list": {Permission.READ},
    "agent_self.topic_show": {Permission.READ},
    "agent_self.topic_comment": {Permission.WRITE},
    "agent_self.topic_close": {Permission.WRITE},

    # =========================================================================
    # bd_project - general bead access (identity beads excluded)
    # =========================================================================
    "bd_project.show": {Permission.READ},
    "bd_project.list": {Permission.READ},
    "bd_project.ready": {Permission.READ},
    "bd_project.query": {Permission.READ},
    "bd_project.comment": {Permission.WRITE},
    "bd_project.edit": {Permission.WRITE},
    "bd_project.create": {Permission.WRITE},
    "bd_project.close": {Permission.WRITE},
    "bd_project.label": {Permission.WRITE},
    "bd_project.sync": {Permission.WRITE},

    # =========================================================================
    # bd_project - task lifecycle
    # =========================================================================
    "bd_project.task_create": {Permission.WRITE},
    "bd_project.task_list": {Permission.READ},
    "bd_project.task_show": {Permission.READ},
    "bd_project.task_promote": {Permission.WRITE, Permission.COORDINATE},
    # Workers may self-assign; assigning others is checked in the lifecycle
    "bd_project.task_assign": {Permission.WRITE},
    "bd_project.task_comment": {Permission.WRITE},
    "bd_project.task_close": {Permission.WRITE},

    # =========================================================================
    # specs
    # =========================================================================
    "specs.list": {Permission.READ},
    "specs.read": {Permission.READ},
    "specs.write": {Permission.WRITE, Permission.COORDINATE},
}


def get_required_permissions(tool_name: str, command: str) -> set[Permission]:
    """Get the permissions required to run a command.

    Unknown commands require COORDINATE as a fail-safe default.

    Example:
        get_required_permissions("bd_project", "task_promote")
        # Returns {Permission.WRITE, Permission.COORDINATE}
    """
    return COMMAND_PERMISSIONS.get(f"{tool_name}.{command}", {Permission.COORDINATE})


def commands_for(tool_name: str) -> list[str]:
    """List the commands registered for a tool, in declaration order."""
    prefix = f"{tool_name}."
    return [key[len(prefix) :] for key in COMMAND_PERMISSIONS if key.startswith(prefix)]
