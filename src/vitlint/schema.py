from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, field_validator


class MaxExpectsOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max: Union[StrictInt, StrictFloat] = 5

    @field_validator("max")
    @classmethod
    def _integral_max(cls, value: Union[int, float]) -> Union[int, float]:
        # Reported as `1`, not `1.0`.
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value


class VitestSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    import_sources: List[str] = ["vitest"]
    global_aliases: Dict[str, List[str]] = {}


class DiagnosticDTO(BaseModel):
    path: str
    line: int
    column: int
    end_line: int
    end_column: int
    rule_id: str
    message_id: str
    message: str
    severity: str


class ParseFailureDTO(BaseModel):
    path: str
    stage: str
    error: str


class LintRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    paths: List[str]
    max: Optional[Union[StrictInt, StrictFloat]] = None
    config: Optional[str] = None
    exclude: List[str] = []


class LintResponse(BaseModel):
    diagnostics: List[DiagnosticDTO]
    parse_failures: List[ParseFailureDTO] = []
    stats: Dict[str, int] = {}


class RuleInfoDTO(BaseModel):
    name: str
    description: str
    type: str
    recommended: bool
    messages: Dict[str, str]
    options_schema: Optional[Dict[str, Any]] = None
