from typing import Any, Dict, List, Type
from pydantic import BaseModel

from trackhabit.domain.models.intents import (
    CreateNote, CreateTask, CreateTeam, DeleteTask, PushNotification, UpdateTask
)


class ActionRegistry:
    """Registry of the intents the assistant is allowed to request"""

    def __init__(self):
        self.actions: Dict[str, Dict[str, Any]] = {}
        self._initialize_actions()

    def _initialize_actions(self):
        """Register the whitelisted intents"""

        builtin_actions = [
            {
                "id": "create_task",
                "description": "Create a new task for the user",
                "model": CreateTask,
            },
            {
                "id": "create_note",
                "description": "Save a note for the user",
                "model": CreateNote,
            },
            {
                "id": "push_notification",
                "description": "Send the user a reminder or alert notification",
                "model": PushNotification,
            },
            {
                "id": "update_task",
                "description": "Change fields of one of the user's tasks, by task ID",
                "model": UpdateTask,
            },
            {
                "id": "delete_task",
                "description": "Delete one of the user's tasks, by task ID",
                "model": DeleteTask,
            },
            {
                "id": "create_team",
                "description": "Create a team owned by the user",
                "model": CreateTeam,
            },
        ]

        for action in builtin_actions:
            self.register_action(action)

    def register_action(self, action_config: Dict[str, Any]):
        """Register an intent kind"""
        self.actions[action_config["id"]] = action_config

    def is_known(self, action_id: str) -> bool:
        return action_id in self.actions

    def get_available_actions(self) -> List[Dict[str, Any]]:
        return list(self.actions.values())

    @staticmethod
    def _field_schema(model: Type[BaseModel]) -> Dict[str, Any]:
        schema = model.model_json_schema()
        schema.get("properties", {}).pop("action", None)
        schema["required"] = [name for name in schema.get("required", []) if name != "action"]
        schema.pop("title", None)
        return schema

    def describe_fields(self, action_id: str) -> str:
        """Render an intent's fields for the instruction template"""

        model: Type[BaseModel] = self.actions[action_id]["model"]
        parts = []
        for name, info in model.model_fields.items():
            if name == "action":
                continue
            parts.append(f"{name} (required)" if info.is_required() else name)
        return ", ".join(parts)

    def tool_definitions(self) -> List[Dict[str, Any]]:
        """Function-calling definitions, one tool per intent kind"""

        return [
            {
                "type": "function",
                "function": {
                    "name": action["id"],
                    "description": action["description"],
                    "parameters": self._field_schema(action["model"]),
                },
            }
            for action in self.actions.values()
        ]


action_registry = ActionRegistry()
