"""Additional printer columns."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from .errors import InvalidColumnError

ColumnType = Literal["string", "integer", "number", "boolean", "date"]

_BRACKETS = {"]": "[", ")": "(", "}": "{"}


def check_json_path(name, json_path):
    """Check that ``json_path`` is a syntactically well-formed column path.

    Only the shape is checked. Whether the path selects anything is up to
    the API server once the CRD is applied.
    """
    if not json_path:
        raise InvalidColumnError(name, json_path, "path is empty")
    if not json_path.startswith("."):
        raise InvalidColumnError(name, json_path, "path must start with '.'")
    if any(c.isspace() for c in json_path):
        raise InvalidColumnError(name, json_path, "path contains whitespace")
    if json_path.endswith(".") and json_path != ".":
        raise InvalidColumnError(name, json_path, "path ends with '.'")

    stack = []
    for c in json_path:
        if c in "[({":
            stack.append(c)
        elif c in _BRACKETS:
            if not stack or stack.pop() != _BRACKETS[c]:
                raise InvalidColumnError(name, json_path, f"unbalanced '{c}'")
    if stack:
        raise InvalidColumnError(name, json_path, f"unclosed '{stack[-1]}'")


class ColumnSpec(BaseModel):
    """A printer column shown by ``kubectl get``."""

    model_config = ConfigDict(frozen=True)

    name: str
    json_path: str
    type: ColumnType = "string"
    format: Optional[str] = None
    description: Optional[str] = None
    priority: int = 0

    @model_validator(mode="after")
    def check_path(self):
        check_json_path(self.name, self.json_path)
        return self

    def to_structural(self):
        column = {"name": self.name, "type": self.type, "jsonPath": self.json_path}
        return self._with_optional(column)

    def to_legacy(self):
        column = {"name": self.name, "type": self.type, "JSONPath": self.json_path}
        return self._with_optional(column)

    def _with_optional(self, column):
        if self.format:
            column["format"] = self.format
        if self.description:
            column["description"] = self.description
        if self.priority:
            column["priority"] = self.priority
        return column
