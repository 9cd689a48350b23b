"""Typed tool arguments.

Agents send free-form string maps. Each known tool's map is translated
once, here, into a frozen object with named fields. An absent key becomes
an empty string rather than an error; deciding what is required is the
precondition checker's job.
"""

from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Mapping, Optional, Type, TypeVar

from quint.fpf import roles

T = TypeVar("T", bound="ToolArguments")


@dataclass(frozen=True)
class ToolArguments:
    """Base for per-tool argument objects."""

    @classmethod
    def from_args(cls: Type[T], args: Optional[Mapping[str, object]]) -> T:
        args = args or {}
        values = {}
        for f in fields(cls):
            raw = args.get(f.name)
            values[f.name] = "" if raw is None else str(raw)
        return cls(**values)


@dataclass(frozen=True)
class InitArgs(ToolArguments):
    pass


@dataclass(frozen=True)
class RecordContextArgs(ToolArguments):
    vocabulary: str = ""
    invariants: str = ""


@dataclass(frozen=True)
class ProposeArgs(ToolArguments):
    title: str = ""
    content: str = ""
    kind: str = ""  # system | episteme
    scope: str = ""
    rationale: str = ""


@dataclass(frozen=True)
class VerifyArgs(ToolArguments):
    hypothesis_id: str = ""
    checks_json: str = ""
    verdict: str = ""


@dataclass(frozen=True)
class TestArgs(ToolArguments):
    __test__ = False  # not a pytest class

    hypothesis_id: str = ""
    test_type: str = ""  # internal | external
    result: str = ""
    verdict: str = ""


@dataclass(frozen=True)
class AuditArgs(ToolArguments):
    hypothesis_id: str = ""
    risks: str = ""


@dataclass(frozen=True)
class DecideArgs(ToolArguments):
    winner_id: str = ""
    title: str = ""
    context: str = ""
    decision: str = ""
    rationale: str = ""
    consequences: str = ""


@dataclass(frozen=True)
class HolonRefArgs(ToolArguments):
    """Arguments for read-only tools that address one holon."""

    holon_id: str = ""


@dataclass(frozen=True)
class SearchArgs(ToolArguments):
    query: str = ""
    layer_filter: str = ""
    scope: str = ""
    limit: str = ""


ARGUMENT_TYPES: Mapping[str, Type[ToolArguments]] = MappingProxyType(
    {
        roles.TOOL_INIT: InitArgs,
        roles.TOOL_RECORD_CONTEXT: RecordContextArgs,
        roles.TOOL_PROPOSE: ProposeArgs,
        roles.TOOL_VERIFY: VerifyArgs,
        roles.TOOL_TEST: TestArgs,
        roles.TOOL_AUDIT: AuditArgs,
        roles.TOOL_DECIDE: DecideArgs,
        roles.TOOL_CALCULATE_R: HolonRefArgs,
        roles.TOOL_AUDIT_TREE: HolonRefArgs,
        roles.TOOL_SEARCH: SearchArgs,
    }
)


def parse_arguments(
    tool_name: str, args: Optional[Mapping[str, object]]
) -> Optional[ToolArguments]:
    """Build the typed arguments for a tool, or None if the tool has none."""
    arg_type = ARGUMENT_TYPES.get(tool_name)
    if arg_type is None:
        return None
    return arg_type.from_args(args)
